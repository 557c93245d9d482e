from __future__ import annotations

from models import EnrichedProfile, PipelineAudit, SocialLinks, YouTubeContent
from profile_validator import ProfileValidator


def _profile(**kwargs) -> EnrichedProfile:
    base = dict(
        name="Omar Suleiman",
        display_name="Omar Suleiman",
        full_bio="Omar Suleiman is an American Islamic scholar, civil rights leader and speaker.",
        tier="verified",
        avatar_url="https://kg.example/omar.jpg",
        confidence="high",
        confidence_score=80,
        data_sources=["youtube", "google_books", "research"],
        name_variants={"input": "Omar Suleiman", "youtube": "Omar Suleiman"},
        youtube=YouTubeContent(channel_id="UCx", channel_url="https://www.youtube.com/channel/UCx", channel_name="Omar Suleiman"),
        pipeline=PipelineAudit(discovered_at="t0", verified_at="t1", enriched_at="t2"),
    )
    base.update(kwargs)
    return EnrichedProfile(**base)


def _types(report):
    return [(f.type, f.severity, f.field) for f in report.flags]


def test_clean_profile_has_no_flags(fakes):
    profile = _profile(social_links=SocialLinks(website="https://omarsuleiman.com"))
    report = ProfileValidator(fakes["prober"](live={"https://omarsuleiman.com"})).validate(profile)
    assert report.flags == []
    assert report.links_probed == 1


def test_dead_website_is_flagged_but_not_removed(fakes):
    profile = _profile(social_links=SocialLinks(website="https://omarsuleiman.com"))
    report = ProfileValidator(fakes["prober"]()).validate(profile)

    assert ("invalid_link", "medium", "website") in _types(report)
    assert profile.social_links.website == "https://omarsuleiman.com"


def test_zero_sources_is_high_severity():
    profile = _profile(data_sources=[], confidence="low", confidence_score=0, full_bio=None, avatar_url=None, youtube=None)
    report = ProfileValidator().validate(profile)

    flags = _types(report)
    assert ("low_confidence", "high", None) in flags
    assert ("low_confidence", "medium", "confidence") in flags
    assert ("missing_data", "medium", "bio") in flags
    assert ("missing_data", "medium", "avatar") in flags
    no_sources = [f for f in report.flags if f.severity == "high"][0]
    assert "no external data sources" in no_sources.message
    assert report.info == ["No media channel or publication found"]


def test_single_source_is_low_severity():
    report = ProfileValidator().validate(_profile(data_sources=["research"]))
    assert _types(report) == [("low_confidence", "low", None)]


def test_name_conflict_needs_more_than_two_variants():
    two = _profile(name_variants={"input": "Omar Suleiman", "youtube": "Sh. Omar Suleiman Official"})
    three = _profile(name_variants={"input": "Omar Suleiman", "youtube": "Yaqeen Institute", "knowledge_graph": "Omar Suleman"})

    assert ProfileValidator().validate(two).flags == []
    assert ("data_conflict", "low", "name") in _types(ProfileValidator().validate(three))


def test_honorifics_do_not_count_as_conflicts():
    profile = _profile(name_variants={"input": "Omar Suleiman", "research": "Imam Omar Suleiman", "youtube": "Dr. Omar Suleiman"})
    assert ProfileValidator().validate(profile).flags == []


def test_missing_name_is_high_severity():
    report = ProfileValidator().validate(_profile(name="x", display_name="x"))
    assert ("missing_data", "high", "name") in _types(report)


def test_stats_accumulate():
    validator = ProfileValidator()
    validator.validate(_profile())
    validator.validate(_profile(data_sources=["research"]))
    stats = validator.get_validation_stats()
    assert stats["total_profiles"] == 2
    assert stats["flagged_profiles"] == 1
    assert stats["flags_by_type"] == {"low_confidence": 1}
