"""YouTube Data API v3 adapter: channel search, channel lookup and recent uploads."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from config.settings import Settings
from models import ChannelResult, VideoResult
from providers.base import HttpProvider
from providers.registry import register
from services.cache import TTLCache, cache_key
from services.errors import ProviderUnavailable
from services.link_utils import parse_youtube_url
from services.name_utils import clean_name, is_relevant_text
from utils.number_parsing import parse_count


logger = logging.getLogger(__name__)


def _best_thumbnail(snippet: Dict[str, Any]) -> Optional[str]:
    thumbs = snippet.get("thumbnails") or {}
    for size in ("high", "medium", "default"):
        url = (thumbs.get(size) or {}).get("url")
        if url:
            return url
    return None


def parse_channel(item: Dict[str, Any]) -> ChannelResult:
    channel_id = item.get("id")
    if not isinstance(channel_id, str) or not channel_id:
        raise ProviderUnavailable("youtube", "malformed response: channel item without id")
    snippet = item.get("snippet") or {}
    stats = item.get("statistics") or {}
    hidden = bool(stats.get("hiddenSubscriberCount"))
    return ChannelResult(
        channel_id=channel_id,
        title=snippet.get("title") or "",
        description=snippet.get("description") or None,
        custom_url=snippet.get("customUrl"),
        thumbnail_url=_best_thumbnail(snippet),
        subscriber_count=None if hidden else parse_count(stats.get("subscriberCount")),
        video_count=parse_count(stats.get("videoCount")),
        view_count=parse_count(stats.get("viewCount")),
    )


class YouTubeProvider(HttpProvider):
    provider_name = "youtube"

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None, cache: Optional[TTLCache] = None):
        super().__init__(settings, session)
        self.cache = cache

    def _api(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        key = self._require(self.settings.youtube_api_key, "YOUTUBE_API_KEY")
        url = f"{self.settings.youtube_api_url}/{resource}"
        return self._get_json(url, params={**params, "key": key}, operation=resource) or {}

    def _cached(self, operation: str, subject: str, fetch, normalize: bool = True):
        if self.cache is None:
            return fetch()
        return self.cache.get_or_fetch(cache_key(self.provider_name, operation, subject, normalize), fetch)

    def get_channel_by_id(self, channel_id: str) -> Optional[ChannelResult]:
        def fetch() -> Optional[dict]:
            data = self._api("channels", {"part": "snippet,statistics", "id": channel_id})
            with self._parsing("channels"):
                items = data.get("items") or []
                return parse_channel(items[0]).model_dump() if items else None

        raw = self._cached("channel_by_id", channel_id, fetch, normalize=False)
        with self._parsing("channels"):
            return ChannelResult.model_validate(raw) if raw else None

    def get_channel_by_handle(self, handle: str) -> Optional[ChannelResult]:
        handle = handle.lstrip("@")
        data = self._api("channels", {"part": "snippet,statistics", "forHandle": f"@{handle}"})
        with self._parsing("channels"):
            items = data.get("items") or []
        if not items:
            data = self._api("channels", {"part": "snippet,statistics", "forUsername": handle})
            with self._parsing("channels"):
                items = data.get("items") or []
        with self._parsing("channels"):
            return parse_channel(items[0]) if items else None

    def search_channel(self, query: str) -> Optional[ChannelResult]:
        """Best channel for a subject name, or None when no result matches the name."""
        cleaned = clean_name(query)
        if not cleaned:
            return None

        def fetch() -> Optional[dict]:
            q = f"{cleaned} {self.settings.youtube_search_hint}".strip()
            data = self._api("search", {"part": "snippet", "type": "channel", "q": q, "maxResults": 5})
            with self._parsing("search"):
                candidates = []
                for item in data.get("items") or []:
                    snippet = item.get("snippet") or {}
                    channel_id = (item.get("id") or {}).get("channelId") or snippet.get("channelId")
                    if channel_id and is_relevant_text(cleaned, snippet.get("title"), snippet.get("channelTitle")):
                        candidates.append(channel_id)
            if not candidates:
                return None
            channel = self.get_channel_by_id(candidates[0])
            return channel.model_dump() if channel else None

        raw = self._cached("search_channel", cleaned, fetch)
        with self._parsing("search"):
            return ChannelResult.model_validate(raw) if raw else None

    def resolve_url(self, url: str) -> Optional[ChannelResult]:
        """Resolve a claimed channel URL to a live channel identity."""
        channel_id, handle = parse_youtube_url(url)
        if channel_id:
            return self.get_channel_by_id(channel_id)
        if handle:
            return self.get_channel_by_handle(handle)
        return None

    def get_recent_videos(self, channel_id: str, n: int = 5) -> List[VideoResult]:
        # Uploads playlist id is the channel id with the UC prefix swapped for UU
        if not channel_id.startswith("UC"):
            return []
        playlist_id = "UU" + channel_id[2:]
        data = self._api("playlistItems", {"part": "snippet", "playlistId": playlist_id, "maxResults": n})
        videos: List[VideoResult] = []
        with self._parsing("playlistItems"):
            for item in data.get("items") or []:
                snippet = item.get("snippet") or {}
                video_id = (snippet.get("resourceId") or {}).get("videoId")
                if not video_id:
                    continue
                videos.append(
                    VideoResult(
                        video_id=video_id,
                        title=snippet.get("title") or "",
                        published_at=snippet.get("publishedAt"),
                        thumbnail_url=_best_thumbnail(snippet),
                    )
                )
        return videos[:n]


def _register():
    register(YouTubeProvider.provider_name, YouTubeProvider)


_register()
