"""Confidence scoring and the policies derived from it (tier, refresh cadence, priority)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from models import VerifiedProfile


BASE_SCORE = 50

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 40


@dataclass(frozen=True)
class ScoreRule:
    name: str
    points: int
    applies: Callable[[VerifiedProfile], bool]


def _has_bio(p: VerifiedProfile) -> bool:
    return bool(p.full_bio and p.full_bio.strip())


def _has_books(p: VerifiedProfile) -> bool:
    return bool(p.verified_api.books or p.possible_books)


DEFAULT_RULES: Tuple[ScoreRule, ...] = (
    ScoreRule("youtube_verified", 15, lambda p: p.verification_results.youtube_verified),
    ScoreRule("podcast_verified", 10, lambda p: p.verification_results.podcast_verified),
    ScoreRule("website_valid", 10, lambda p: p.verified_links.website is not None),
    ScoreRule("twitter_valid", 5, lambda p: p.verified_links.twitter is not None),
    ScoreRule("instagram_valid", 5, lambda p: p.verified_links.instagram is not None),
    ScoreRule("has_books", 5, _has_books),
    ScoreRule("bio_missing", -10, lambda p: not _has_bio(p)),
    ScoreRule("region_unknown", -5, lambda p: not p.region),
    ScoreRule("many_dead_links", -10, lambda p: p.verification_results.links_invalid > 2),
    ScoreRule("no_external_sources", -50, lambda p: not p.data_sources),
)


@dataclass(frozen=True)
class ScoreBreakdown:
    score: int
    applied: List[Tuple[str, int]]


def score_profile(
    profile: VerifiedProfile,
    rules: Sequence[ScoreRule] = DEFAULT_RULES,
    base: int = BASE_SCORE,
) -> ScoreBreakdown:
    applied = [(rule.name, rule.points) for rule in rules if rule.applies(profile)]
    raw = base + sum(points for _, points in applied)
    return ScoreBreakdown(score=max(0, min(100, raw)), applied=applied)


def confidence_for(score: int) -> str:
    if score >= HIGH_THRESHOLD:
        return "high"
    if score >= MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def tier_for(confidence: str) -> str:
    return {"high": "verified", "medium": "rising"}.get(confidence, "community")


def refresh_cadence_days(score: int) -> int:
    if score >= HIGH_THRESHOLD:
        return 30
    if score >= MEDIUM_THRESHOLD:
        return 14
    return 7


def refresh_priority(score: int) -> str:
    if score >= HIGH_THRESHOLD:
        return "low"
    if score >= MEDIUM_THRESHOLD:
        return "normal"
    return "high"
