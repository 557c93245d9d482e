from __future__ import annotations

import pytest

from models import (
    BookResult,
    HandleLink,
    VerificationResults,
    VerifiedApiData,
    VerifiedLinks,
    VerifiedProfile,
    WebsiteLink,
    YouTubeLink,
)
from services.scoring import (
    DEFAULT_RULES,
    ScoreRule,
    confidence_for,
    refresh_cadence_days,
    refresh_priority,
    score_profile,
    tier_for,
)


def _profile(**kwargs) -> VerifiedProfile:
    base = dict(
        input_name="Test Subject",
        full_bio="A long enough biography.",
        region="North America",
        data_sources=["youtube"],
        discovered_at="2026-01-01T00:00:00+00:00",
        verified_at="2026-01-01T00:00:01+00:00",
    )
    base.update(kwargs)
    return VerifiedProfile(**base)


def test_omar_scenario_scores_80():
    profile = _profile(
        input_name="Omar Suleiman",
        verified_api=VerifiedApiData(books=[BookResult(title="Angels in Your Presence")]),
        verified_links=VerifiedLinks(
            website=WebsiteLink(url="https://omarsuleiman.com"),
            youtube=YouTubeLink(url="https://www.youtube.com/channel/UCx", channel_id="UCx", channel_name="Omar Suleiman", subscriber_count=12000),
        ),
        verification_results=VerificationResults(links_checked=2, links_valid=2, youtube_verified=True),
        data_sources=["youtube", "google_books", "research"],
    )
    breakdown = score_profile(profile)
    assert breakdown.score == 80
    assert dict(breakdown.applied) == {"youtube_verified": 15, "website_valid": 10, "has_books": 5}
    assert confidence_for(breakdown.score) == "high"


def test_zero_sources_clamps_to_zero():
    profile = _profile(full_bio=None, region=None, data_sources=[])
    breakdown = score_profile(profile)
    assert breakdown.score == 0
    assert confidence_for(breakdown.score) == "low"
    assert ("no_external_sources", -50) in breakdown.applied


def test_penalties_and_small_bonuses():
    profile = _profile(
        full_bio="  ",
        region=None,
        verified_links=VerifiedLinks(
            twitter=HandleLink(url="https://x.com/someone"),
            instagram=HandleLink(url="https://instagram.com/someone"),
        ),
        verification_results=VerificationResults(links_checked=5, links_valid=2, links_invalid=3),
    )
    # 50 + 5 + 5 - 10 (bio) - 5 (region) - 10 (dead links)
    assert score_profile(profile).score == 35


def test_score_never_exceeds_100():
    rules = DEFAULT_RULES + (ScoreRule("bonus", 200, lambda p: True),)
    assert score_profile(_profile(), rules).score == 100


def test_research_book_claim_counts_as_book():
    profile = _profile(possible_books=[{"title": "A Book", "year": "2019"}])
    assert ("has_books", 5) in score_profile(profile).applied


@pytest.mark.parametrize("score,confidence,tier,days,priority", [
    (100, "high", "verified", 30, "low"),
    (70, "high", "verified", 30, "low"),
    (69, "medium", "rising", 14, "normal"),
    (40, "medium", "rising", 14, "normal"),
    (39, "low", "community", 7, "high"),
    (0, "low", "community", 7, "high"),
])
def test_buckets(score, confidence, tier, days, priority):
    assert confidence_for(score) == confidence
    assert tier_for(confidence) == tier
    assert refresh_cadence_days(score) == days
    assert refresh_priority(score) == priority
