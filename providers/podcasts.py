"""Podcast catalog (iTunes search) and RSS feed prober."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import feedparser
import requests

from config.settings import Settings
from models import FeedInfo, PodcastResult
from providers.base import HttpProvider
from providers.registry import register
from services.cache import TTLCache, cache_key
from services.name_utils import clean_name, feed_slug, is_relevant_text
from utils.call_trace import traced


logger = logging.getLogger(__name__)


def parse_podcast(item: Dict[str, Any]) -> Optional[PodcastResult]:
    collection_id = item.get("collectionId") or item.get("trackId")
    title = item.get("collectionName") or item.get("trackName")
    if not collection_id or not title:
        return None
    return PodcastResult(
        podcast_id=str(collection_id),
        title=title,
        artist=item.get("artistName"),
        image_url=item.get("artworkUrl600") or item.get("artworkUrl100"),
        episode_count=item.get("trackCount"),
        rss_url=item.get("feedUrl"),
        page_url=item.get("collectionViewUrl"),
    )


class ItunesPodcastProvider(HttpProvider):
    provider_name = "itunes"

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None, cache: Optional[TTLCache] = None):
        super().__init__(settings, session)
        self.cache = cache

    def _fetch(self, cleaned: str) -> List[dict]:
        params = {"term": cleaned, "entity": "podcast", "limit": 10}
        data = self._get_json(self.settings.itunes_search_url, params=params, operation="search") or {}
        results: List[dict] = []
        with self._parsing("search"):
            for item in data.get("results") or []:
                podcast = parse_podcast(item)
                if podcast is None:
                    continue
                if not is_relevant_text(cleaned, podcast.title, podcast.artist):
                    continue
                results.append(podcast.model_dump())
        return results

    def search_by_name(self, name: str) -> List[PodcastResult]:
        cleaned = clean_name(name)
        if not cleaned:
            return []
        if self.cache is None:
            raw = self._fetch(cleaned)
        else:
            raw = self.cache.get_or_fetch(cache_key(self.provider_name, "search_by_name", cleaned), lambda: self._fetch(cleaned))
        with self._parsing("search"):
            return [PodcastResult.model_validate(p) for p in raw or []]


class RssFeedProber(HttpProvider):
    """Confirms a podcast feed exists by fetching and parsing it."""

    provider_name = "rss"

    def probe_feed(self, url: str) -> Optional[FeedInfo]:
        """Parsed feed metadata, or None when the feed is absent or not a feed."""
        if not url:
            return None
        self.throttle.wait()
        try:
            with traced("rss.probe_feed", self.provider_name, "probe_feed", url=url) as info:
                response = self.session.get(url, timeout=self.settings.http_timeout_seconds)
                info["status"] = str(response.status_code)
        except requests.exceptions.RequestException as e:
            logger.info("feed fetch failed", extra={"provider": self.provider_name, "error": str(e)})
            return None
        if response.status_code != 200:
            return None
        parsed = feedparser.parse(response.content)
        feed = parsed.get("feed") or {}
        entries = parsed.get("entries") or []
        if not entries and not feed.get("title"):
            return None
        image = feed.get("image") or {}
        return FeedInfo(
            url=url,
            title=feed.get("title"),
            episode_count=len(entries),
            image_url=image.get("href") if isinstance(image, dict) else None,
            page_url=feed.get("link"),
        )

    def fallback_feed_for(self, name: str) -> Optional[FeedInfo]:
        """Try the fixed-convention feed URL derived from the subject's name."""
        slug = feed_slug(name)
        if not slug:
            return None
        info = self.probe_feed(f"{self.settings.podcast_feed_fallback_base.rstrip('/')}/{slug}")
        if info is None:
            return None
        if not info.page_url:
            page = f"{self.settings.podcast_page_fallback_base.rstrip('/')}/{slug}"
            info = info.model_copy(update={"page_url": page})
        return info


def _register():
    register(ItunesPodcastProvider.provider_name, ItunesPodcastProvider)
    register(RssFeedProber.provider_name, RssFeedProber)


_register()
