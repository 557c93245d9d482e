"""Discovery: query every provider concurrently and merge into a CandidateProfile."""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from config.settings import Settings, get_settings
from models import CandidateProfile, PossibleLinks, ResearchResult, SocialLinkHints, VerifiedApiData
from pipelines.runner import RunContext
from providers import ProviderSet
from providers.social_links import extract_social_links_from_text, merge_hints
from services.errors import ProviderUnavailable, ResearchParseFailure


logger = logging.getLogger(__name__)

RECENT_VIDEOS = 5


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _channel_with_videos(providers: ProviderSet, name: str):
    channel = providers.channels.search_channel(name)
    if channel is None:
        return None
    try:
        videos = providers.channels.get_recent_videos(channel.channel_id, RECENT_VIDEOS)
    except ProviderUnavailable as e:
        logger.info("recent videos unavailable", extra={"provider": "youtube", "error": str(e)})
        videos = []
    return channel, videos


def _provider_calls(providers: ProviderSet, name: str) -> Dict[str, Callable[[], Any]]:
    calls: Dict[str, Callable[[], Any]] = {
        "youtube": lambda: _channel_with_videos(providers, name),
        "google_books": lambda: providers.books.search_by_author(name),
        "itunes": lambda: providers.podcasts.search_by_name(name),
        "knowledge_graph": lambda: providers.knowledge_graph.lookup(name),
        "newsapi": lambda: providers.news.search(name),
        "wikidata": lambda: providers.social_links.lookup(name),
    }
    if providers.research is not None:
        calls["research"] = lambda: providers.research.research(name)
    return calls


def _describe(key: str, value: Any) -> str:
    if key == "youtube":
        channel, videos = value
        return f"youtube: matched channel '{channel.title}' ({channel.subscriber_count or 0} subscribers, {len(videos)} recent videos)"
    if key in ("google_books", "itunes", "newsapi"):
        return f"{key}: {len(value)} result(s)"
    if key == "knowledge_graph":
        return f"knowledge_graph: matched entity '{value.name}'"
    if key == "wikidata":
        return "wikidata: social profiles found"
    return f"{key}: data returned"


def _is_found(key: str, value: Any) -> bool:
    if value is None:
        return False
    if key == "wikidata":
        return not value.is_empty()
    if key == "research":
        return not value.is_empty()
    if isinstance(value, list):
        return len(value) > 0
    return True


def discover_profile(
    name: str,
    providers: ProviderSet,
    *,
    cancel_event: Optional[threading.Event] = None,
    timeout_seconds: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> CandidateProfile:
    """Fan out to all providers and merge whatever came back.

    A provider failure or timeout becomes "not found" plus a note. When the
    cancel event is set or the deadline passes, results gathered so far are
    still merged and returned.
    """
    settings = settings or get_settings()
    timeout_seconds = settings.discovery_timeout_seconds if timeout_seconds is None else timeout_seconds
    calls = _provider_calls(providers, name)
    results: Dict[str, Any] = {}
    notes: List[str] = []
    cancelled = False

    ex = ThreadPoolExecutor(max_workers=max(1, min(settings.discovery_concurrency, len(calls))), thread_name_prefix="discover")
    futures: Dict[Future, str] = {ex.submit(fn): key for key, fn in calls.items()}
    pending = set(futures)
    deadline = time.monotonic() + timeout_seconds

    def collect(fut: Future) -> None:
        key = futures[fut]
        try:
            value = fut.result()
        except ProviderUnavailable as e:
            notes.append(f"{key}: unavailable ({e.reason})")
            return
        except ResearchParseFailure as e:
            notes.append(f"research: unparseable response, falling back to name-only data ({e.message})")
            return
        except Exception as e:
            logger.warning("provider call failed", extra={"provider": key, "subject": name, "error": str(e)})
            notes.append(f"{key}: failed ({type(e).__name__}: {e})")
            return
        if _is_found(key, value):
            results[key] = value
            notes.append(_describe(key, value))
        else:
            notes.append(f"{key}: not found")

    try:
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            done, pending = wait(pending, timeout=min(remaining, 0.25), return_when=FIRST_COMPLETED)
            for fut in done:
                collect(fut)
    finally:
        reason = "cancelled" if cancelled else "timed out"
        for fut in pending:
            if fut.done() and not fut.cancelled():
                collect(fut)
            else:
                fut.cancel()
                notes.append(f"{futures[fut]}: {reason}")
        ex.shutdown(wait=False, cancel_futures=True)

    candidate = merge_candidate(name, results, notes, cancelled=cancelled)
    logger.info(
        "discovery merged",
        extra={"stage": "discovery", "subject": name, "status": "cancelled" if cancelled else "ok"},
    )
    return candidate


def merge_candidate(name: str, results: Dict[str, Any], notes: List[str], cancelled: bool = False) -> CandidateProfile:
    """Combine provider outputs; structured values win over research hints for the same fact."""
    research: ResearchResult = results.get("research") or ResearchResult()
    channel, videos = results.get("youtube") or (None, [])
    books = results.get("google_books") or []
    podcasts = results.get("itunes") or []
    kg = results.get("knowledge_graph")
    news = results.get("newsapi") or []
    wikidata: SocialLinkHints = results.get("wikidata") or SocialLinkHints()

    structured = merge_hints(extract_social_links_from_text(channel.description if channel else None), wikidata)
    hinted = research.possible_links
    top_podcast = podcasts[0] if podcasts else None
    links = PossibleLinks(
        website=structured.website or hinted.website,
        youtube=channel.url if channel else hinted.youtube,
        twitter=structured.twitter or hinted.twitter,
        instagram=structured.instagram or hinted.instagram,
        facebook=structured.facebook or hinted.facebook,
        tiktok=structured.tiktok or hinted.tiktok,
        podcast=(top_podcast.page_url if top_podcast and top_podcast.page_url else hinted.podcast),
        podcast_rss=(top_podcast.rss_url if top_podcast and top_podcast.rss_url else hinted.podcast_rss),
        spotify=structured.spotify or hinted.spotify,
    )

    variants: Dict[str, str] = {"input": name}
    if research.display_name or research.name:
        variants["research"] = research.display_name or research.name  # type: ignore[assignment]
    if kg is not None and kg.name:
        variants["knowledge_graph"] = kg.name
    if channel is not None and channel.title:
        variants["youtube"] = channel.title

    sources = [key for key in ("youtube", "google_books", "itunes", "knowledge_graph", "newsapi", "wikidata") if key in results]
    if "research" in results:
        sources.append("research")
    if not structured.is_empty() and "channel_description" in structured.sources:
        sources.append("channel_description")

    image = (kg.image_url if kg else None) or (channel.thumbnail_url if channel else None) or research.possible_image_url

    return CandidateProfile(
        input_name=name,
        name=research.name or name,
        display_name=research.display_name or name,
        title=research.title,
        short_bio=research.short_bio or (kg.description if kg else None),
        full_bio=research.full_bio or (kg.detailed_description if kg else None),
        category=research.category,
        gender=research.gender,
        region=research.region,
        country=research.country,
        country_flag=research.country_flag,
        location=research.location,
        languages=research.languages,
        topics=research.topics,
        affiliations=research.affiliations,
        verified_api=VerifiedApiData(
            channel=channel,
            recent_videos=videos,
            books=books,
            podcasts=podcasts,
            knowledge_graph=kg,
            news=news,
        ),
        possible_links=links,
        possible_books=research.possible_books,
        possible_audio_books=research.possible_audio_books,
        possible_ebooks=research.possible_ebooks,
        possible_courses=research.possible_courses,
        possible_image_url=image,
        image_search_query=research.image_search_query or f"{name} photo",
        is_historical=research.is_historical,
        lifespan=research.lifespan,
        note=research.note,
        name_variants=variants,
        data_sources=sources,
        discovery_notes=notes + [f"research: {n}" for n in research.discovery_notes],
        cancelled=cancelled,
        discovered_at=_now_iso(),
    )


class DiscoverStep:
    stage = "discovery"

    def __init__(self, providers: ProviderSet, cancel_event: Optional[threading.Event] = None, timeout_seconds: Optional[float] = None) -> None:
        self.providers = providers
        self.cancel_event = cancel_event
        self.timeout_seconds = timeout_seconds

    def run(self, ctx: RunContext) -> RunContext:
        candidate = discover_profile(
            ctx.name, self.providers, cancel_event=self.cancel_event, timeout_seconds=self.timeout_seconds
        )
        ctx.candidate = candidate
        ctx.stage_report["discovery"] = {
            "data_sources": list(candidate.data_sources),
            "notes": list(candidate.discovery_notes),
            "cancelled": candidate.cancelled,
            "links_offered": [k for k, v in candidate.possible_links.model_dump().items() if v],
        }
        return ctx
