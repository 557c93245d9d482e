"""Verification: confirm each candidate link is live and belongs to the subject."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, TypeVar

from models import (
    CandidateProfile,
    ChannelResult,
    FeedInfo,
    HandleLink,
    PodcastLink,
    VerificationResults,
    VerifiedLinks,
    VerifiedProfile,
    WebsiteLink,
    YouTubeLink,
)
from pipelines.runner import RunContext
from providers import ProviderSet
from services.errors import ProviderUnavailable
from services.link_utils import handle_from_url, parse_youtube_url


logger = logging.getLogger(__name__)

T = TypeVar("T")

GENERIC_KINDS = ("website", "twitter", "instagram", "facebook", "tiktok", "spotify")


class _Tally:
    def __init__(self) -> None:
        self.checked = 0
        self.valid = 0
        self.invalid = 0
        self.notes: List[str] = []

    def offered(self, ok: bool) -> None:
        self.checked += 1
        if ok:
            self.valid += 1
        else:
            self.invalid += 1

    def recovered(self, was_offered: bool) -> None:
        """A fallback search found what the offered link could not (or what was never offered)."""
        if was_offered:
            self.invalid -= 1
            self.valid += 1
        else:
            self.checked += 1
            self.valid += 1


def _guarded(tally: _Tally, label: str, fn: Callable[[], Optional[T]]) -> Optional[T]:
    try:
        return fn()
    except ProviderUnavailable as e:
        tally.notes.append(f"{label}: unavailable ({e.reason})")
        return None
    except Exception as e:
        logger.warning("verification call failed", extra={"stage": "verification", "provider": label, "error": str(e)})
        tally.notes.append(f"{label}: failed ({type(e).__name__}: {e})")
        return None


def _youtube_link(channel: ChannelResult, via_fallback: bool) -> YouTubeLink:
    return YouTubeLink(
        url=channel.url,
        channel_id=channel.channel_id,
        channel_name=channel.title,
        subscriber_count=channel.subscriber_count,
        video_count=channel.video_count,
        thumbnail_url=channel.thumbnail_url,
        description=channel.description,
        via_fallback=via_fallback,
    )


def _podcast_link(feed: FeedInfo, page_url: Optional[str], via_fallback: bool) -> PodcastLink:
    return PodcastLink(
        url=page_url or feed.page_url or feed.url,
        rss_url=feed.url,
        title=feed.title,
        episode_count=feed.episode_count,
        image_url=feed.image_url,
        via_fallback=via_fallback,
    )


def _verify_youtube(candidate: CandidateProfile, providers: ProviderSet, tally: _Tally) -> Optional[YouTubeLink]:
    claimed = candidate.possible_links.youtube
    name = candidate.best_name
    channel: Optional[ChannelResult] = None
    if claimed:
        known = candidate.verified_api.channel
        claimed_id, _ = parse_youtube_url(claimed)
        if known is not None and claimed_id == known.channel_id:
            # Already resolved through the channel API during discovery
            channel = known
        else:
            channel = _guarded(tally, "youtube", lambda: providers.channels.resolve_url(claimed))
        tally.offered(channel is not None)
        if channel is None:
            tally.notes.append(f"youtube: claimed link did not resolve to a channel ({claimed})")
        else:
            return _youtube_link(channel, via_fallback=False)
    if not name:
        return None
    channel = _guarded(tally, "youtube", lambda: providers.channels.search_channel(name))
    if channel is None:
        tally.notes.append("youtube: name search found no channel")
        return None
    tally.recovered(was_offered=bool(claimed))
    tally.notes.append(f"youtube: found channel by name search ({channel.title})")
    return _youtube_link(channel, via_fallback=True)


def _verify_podcast(candidate: CandidateProfile, providers: ProviderSet, tally: _Tally) -> Optional[PodcastLink]:
    links = candidate.possible_links
    claimed = links.podcast_rss or links.podcast
    name = candidate.best_name
    if claimed:
        feed = _guarded(tally, "podcast", lambda: providers.feeds.probe_feed(claimed))
        tally.offered(feed is not None)
        if feed is not None:
            return _podcast_link(feed, links.podcast, via_fallback=False)
        tally.notes.append(f"podcast: claimed feed is not a live RSS feed ({claimed})")
    if not name:
        return None
    feed = _guarded(tally, "podcast", lambda: providers.feeds.fallback_feed_for(name))
    if feed is None:
        tally.notes.append("podcast: no feed at the conventional fallback location")
        return None
    tally.recovered(was_offered=bool(claimed))
    tally.notes.append(f"podcast: found feed at fallback location ({feed.url})")
    return _podcast_link(feed, None, via_fallback=True)


def verify_profile(candidate: CandidateProfile, providers: ProviderSet) -> VerifiedProfile:
    """Check every offered link; only confirmed links survive, failures become absence."""
    tally = _Tally()
    verified: Dict[str, object] = {}

    for kind in GENERIC_KINDS:
        url = getattr(candidate.possible_links, kind)
        if not url:
            continue
        result = providers.prober.probe(url, fetch_title=(kind == "website"))
        tally.offered(result.reachable)
        if not result.reachable:
            tally.notes.append(f"{kind}: unreachable ({result.status_code or result.error})")
            continue
        if kind == "website":
            verified[kind] = WebsiteLink(url=url, title=result.title, http_status=result.status_code)
        else:
            verified[kind] = HandleLink(url=url, handle=handle_from_url(url), http_status=result.status_code)

    youtube = _verify_youtube(candidate, providers, tally)
    podcast = _verify_podcast(candidate, providers, tally)
    if youtube is not None:
        verified["youtube"] = youtube
    if podcast is not None:
        verified["podcast"] = podcast

    sources = list(candidate.data_sources)
    if youtube is not None and "youtube" not in sources:
        sources.append("youtube")
    if podcast is not None and "rss" not in sources:
        sources.append("rss")

    links = VerifiedLinks(**verified)
    results = VerificationResults(
        links_checked=tally.checked,
        links_valid=tally.valid,
        links_invalid=tally.invalid,
        youtube_verified=youtube is not None,
        podcast_verified=podcast is not None,
        spotify_verified=links.spotify is not None,
    )
    logger.info(
        f"verified {results.links_valid}/{results.links_checked} links",
        extra={"stage": "verification", "subject": candidate.input_name},
    )
    data = candidate.model_dump()
    data.update(
        data_sources=sources,
        verified_links=links,
        verification_results=results,
        verification_notes=tally.notes,
        verified_at=datetime.now(timezone.utc).isoformat(),
    )
    return VerifiedProfile.model_validate(data)


class VerifyStep:
    stage = "verification"

    def __init__(self, providers: ProviderSet) -> None:
        self.providers = providers

    def run(self, ctx: RunContext) -> RunContext:
        if ctx.candidate is None:
            raise ValueError("verification needs a discovered candidate")
        verified = verify_profile(ctx.candidate, self.providers)
        ctx.verified = verified
        ctx.stage_report["verification"] = {
            **verified.verification_results.model_dump(),
            "valid_links": verified.verified_links.valid_kinds(),
            "notes": list(verified.verification_notes),
        }
        return ctx
