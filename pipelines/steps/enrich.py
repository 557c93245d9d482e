"""Enrichment: score the verified profile and shape it for storage."""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from config.settings import Settings, get_settings
from models import (
    Book,
    EnrichedProfile,
    PipelineAudit,
    PodcastContent,
    RewriteResult,
    SocialLinks,
    VerifiedProfile,
    YouTubeContent,
)
from pipelines.runner import RunContext
from ports.providers import ResearchPort
from services.scoring import DEFAULT_RULES, ScoreRule, confidence_for, score_profile, tier_for
from utils.number_parsing import format_count
from utils.outcome import Outcome, attempt


logger = logging.getLogger(__name__)

SPARSE_BIO_LENGTH = 100


def _year(published_date: Optional[str]) -> Optional[int]:
    if not published_date:
        return None
    m = re.match(r"(\d{4})", published_date)
    return int(m.group(1)) if m else None


def books_for(profile: VerifiedProfile) -> List[Book]:
    api_books = profile.verified_api.books
    if api_books:
        return [
            Book(
                title=b.title,
                authors=b.authors,
                year=_year(b.published_date),
                published_date=b.published_date,
                isbn=b.isbn,
                amazon_url=b.amazon_url,
                thumbnail=b.thumbnail,
                source="google_books",
            )
            for b in api_books
        ]
    # Research claims are unverified; their links are not carried over
    return [Book(title=c.title, year=c.year, source="research") for c in profile.possible_books]


def verified_social_links(profile: VerifiedProfile) -> SocialLinks:
    links = profile.verified_links
    return SocialLinks(**{kind: getattr(links, kind).url for kind in links.valid_kinds()})


def youtube_content(profile: VerifiedProfile) -> Optional[YouTubeContent]:
    link = profile.verified_links.youtube
    if link is None:
        return None
    known = profile.verified_api.channel
    videos = profile.verified_api.recent_videos if known is not None and known.channel_id == link.channel_id else []
    return YouTubeContent(
        channel_id=link.channel_id,
        channel_url=link.url,
        channel_name=link.channel_name,
        subscriber_count=link.subscriber_count,
        subscriber_count_formatted=format_count(link.subscriber_count),
        video_count=link.video_count,
        avatar_url=link.thumbnail_url,
        recent_videos=videos,
    )


def podcast_content(profile: VerifiedProfile) -> Optional[PodcastContent]:
    link = profile.verified_links.podcast
    if link is None:
        return None
    return PodcastContent(
        title=link.title,
        url=link.url,
        rss_url=link.rss_url,
        episode_count=link.episode_count,
        image_url=link.image_url,
    )


def _rewrite_context(profile: VerifiedProfile, confidence: str) -> dict:
    return {
        "title": profile.title,
        "category": profile.category,
        "country": profile.country,
        "topics": profile.topics,
        "confidence": confidence,
        "youtube": profile.verified_links.youtube.channel_name if profile.verified_links.youtube else None,
        "books": [b.title for b in profile.verified_api.books] or [b.title for b in profile.possible_books],
    }


def _needs_rewrite(bio: Optional[str], confidence: str) -> bool:
    return confidence == "low" or len((bio or "").strip()) < SPARSE_BIO_LENGTH


def enrich_profile(
    verified: VerifiedProfile,
    research: Optional[ResearchPort] = None,
    settings: Optional[Settings] = None,
    rules: tuple[ScoreRule, ...] = DEFAULT_RULES,
) -> EnrichedProfile:
    settings = settings or get_settings()
    breakdown = score_profile(verified, rules)
    confidence = confidence_for(breakdown.score)
    notes: List[str] = [f"score {breakdown.score}: " + ", ".join(f"{n} {p:+d}" for n, p in breakdown.applied)]

    name = verified.name or verified.input_name
    full_bio = verified.full_bio
    short_bio = verified.short_bio
    category = verified.category
    topics = list(verified.topics)
    rewritten = False

    if research is not None and settings.bio_rewrite_enabled and _needs_rewrite(full_bio, confidence):
        outcome: Outcome[RewriteResult] = attempt(
            "bio rewrite", research.rewrite_bio, name, full_bio, _rewrite_context(verified, confidence)
        )
        if outcome.ok:
            rewrite = outcome.value
            full_bio = outcome.map(lambda r: r.improved_bio).or_else(full_bio)
            short_bio = rewrite.improved_short_bio or short_bio
            # A suggested category only fills an empty one; suggested topics are merged in
            category = category or rewrite.suggested_category
            topics = list(dict.fromkeys(topics + list(rewrite.suggested_topics)))
            rewritten = True
            notes.append("bio rewritten")
        else:
            notes.append(f"bio rewrite skipped, original kept ({outcome.error})")

    youtube = youtube_content(verified)
    kg = verified.verified_api.knowledge_graph
    avatar = (kg.image_url if kg else None) or (youtube.avatar_url if youtube else None) or verified.possible_image_url

    enriched = EnrichedProfile(
        name=name,
        display_name=verified.display_name or name,
        title=verified.title,
        short_bio=short_bio,
        full_bio=full_bio,
        category=category,
        tier=tier_for(confidence),
        gender=verified.gender,
        region=verified.region,
        country=verified.country,
        country_flag=verified.country_flag,
        location=verified.location,
        languages=verified.languages,
        topics=topics,
        affiliations=verified.affiliations,
        avatar_url=avatar,
        image_search_query=verified.image_search_query,
        social_links=verified_social_links(verified),
        youtube=youtube,
        podcast=podcast_content(verified),
        books=books_for(verified),
        courses=verified.possible_courses,
        audio_books=verified.possible_audio_books,
        ebooks=verified.possible_ebooks,
        news=verified.verified_api.news,
        is_historical=verified.is_historical,
        lifespan=verified.lifespan,
        note=verified.note,
        confidence=confidence,
        confidence_score=breakdown.score,
        data_sources=verified.data_sources,
        name_variants=verified.name_variants,
        enrichment_notes=notes,
        pipeline=PipelineAudit(
            discovered_at=verified.discovered_at,
            verified_at=verified.verified_at,
            enriched_at=datetime.now(timezone.utc).isoformat(),
            score_breakdown=breakdown.applied,
            bio_rewritten=rewritten,
        ),
    )
    logger.info(
        f"confidence {confidence} ({breakdown.score})",
        extra={"stage": "enrichment", "subject": verified.input_name},
    )
    return enriched


class EnrichStep:
    stage = "enrichment"

    def __init__(self, research: Optional[ResearchPort] = None, settings: Optional[Settings] = None) -> None:
        self.research = research
        self.settings = settings

    def run(self, ctx: RunContext) -> RunContext:
        if ctx.verified is None:
            raise ValueError("enrichment needs a verified profile")
        enriched = enrich_profile(ctx.verified, self.research, self.settings)
        ctx.enriched = enriched
        ctx.stage_report["enrichment"] = {
            "confidence": enriched.confidence,
            "confidence_score": enriched.confidence_score,
            "tier": enriched.tier,
            "score_breakdown": [list(item) for item in enriched.pipeline.score_breakdown],
            "bio_rewritten": enriched.pipeline.bio_rewritten,
            "notes": list(enriched.enrichment_notes),
        }
        return ctx
