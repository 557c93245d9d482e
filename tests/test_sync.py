from __future__ import annotations

from models import ChannelResult, EnrichedProfile, PipelineAudit, ProfileField, ResearchResult, YouTubeContent
from pipelines.sync import SyncService, gap_fill


CHANNEL = ChannelResult(channel_id="UCabcdefghijklmnopqrstuv", title="Omar Suleiman", subscriber_count=12000, video_count=800)


def _stored(store):
    profile = EnrichedProfile(
        name="Omar Suleiman",
        display_name="Omar Suleiman",
        full_bio="Stored biography.",
        region="North America",
        tier="community",
        confidence="low",
        confidence_score=35,
        data_sources=["research"],
        pipeline=PipelineAudit(discovered_at="t0", verified_at="t1", enriched_at="t2"),
    )
    return store.save(profile).subject_id


def _providers(make_providers, fakes):
    return make_providers(
        channels=fakes["channels"](by_name={"Omar Suleiman": CHANNEL}),
        research=fakes["research"](by_name={"Omar Suleiman": ResearchResult.model_validate({
            "name": "Omar Suleiman",
            "fullBio": "A different biography that must not replace the stored one.",
            "region": "Europe",
            "country": "United States",
            "possibleLinks": {"twitter": "https://twitter.com/omarsuleiman10", "instagram": "https://instagram.com/dead"},
        })}),
        prober=fakes["prober"](live={"https://twitter.com/omarsuleiman10"}),
    )


def test_sync_fills_gaps_without_overwriting(make_providers, fakes, store, settings):
    subject_id = _stored(store)
    service = SyncService(_providers(make_providers, fakes), store, settings)

    outcome = service.sync_profile(subject_id)

    assert outcome["success"] is True and outcome["action"] == "enriched"
    assert outcome["version"] == 2
    assert set(outcome["enrichments"]) >= {
        ProfileField.SOCIAL_TWITTER.value,
        ProfileField.SOCIAL_YOUTUBE.value,
        ProfileField.CONTENT_YOUTUBE.value,
        ProfileField.STATS_YOUTUBE_SUBSCRIBERS.value,
        ProfileField.COUNTRY.value,
    }
    record = store.get_profile(subject_id)
    assert record["profile"]["bio"] == "Stored biography."
    assert record["region"] == "North America"
    assert record["social_links"]["twitter"] == "https://twitter.com/omarsuleiman10"
    # Unverified claims never reach the record
    assert record["social_links"]["instagram"] is None
    assert record["stats"]["youtube_subscribers"] == 12000
    assert record["data_source"]["sources"] == ["research"]

    latest = store.get_version_history(subject_id)[0]
    assert latest.trigger == "sync" and latest.data == record


def test_second_sync_is_a_no_op(make_providers, fakes, store, settings):
    subject_id = _stored(store)
    service = SyncService(_providers(make_providers, fakes), store, settings)
    service.sync_profile(subject_id)

    again = service.sync_profile(subject_id)

    assert again["action"] == "skipped" and again["enrichments"] == []
    assert len(store.get_version_history(subject_id)) == 2


def test_sync_batch_summary(make_providers, fakes, store, settings):
    subject_id = _stored(store)
    pauses = []
    service = SyncService(_providers(make_providers, fakes), store, settings, sleep=pauses.append)

    batch = service.sync_batch([subject_id, "nobody"])

    assert batch["summary"] == {"total": 2, "enriched": 1, "skipped": 0, "failed": 1}
    missing = batch["results"][1]
    assert missing["success"] is False
    assert missing["error"] == "Profile not found in database"
    assert pauses == [0]


def test_gap_fill_writes_only_blank_fields():
    existing = {
        "profile": {"bio": "kept", "avatar": None},
        "topics": [],
        "stats": {"youtube_subscribers": None, "youtube_videos": 5},
        "content": {"youtube": None, "books": []},
    }
    fresh = {
        ProfileField.PROFILE_BIO: "new",
        ProfileField.PROFILE_AVATAR: "https://img.example/a.jpg",
        ProfileField.TOPICS: ["Ethics"],
        ProfileField.CONTENT_YOUTUBE: {"subscriber_count": 10, "video_count": 3},
        ProfileField.CONTENT_BOOKS: [{"title": "A"}, {"title": "B"}],
        ProfileField.REGION: None,
    }

    update = gap_fill(existing, fresh)

    assert set(update.fields()) == {
        "profile.avatar",
        "topics",
        "content.youtube",
        "stats.youtube_subscribers",
        "content.books",
        "stats.books_published",
    }
    values = dict(update)
    assert values[ProfileField.STATS_BOOKS_PUBLISHED] == 2


def test_sync_reports_validator_flags(make_providers, fakes, store, settings):
    subject_id = _stored(store)
    service = SyncService(_providers(make_providers, fakes), store, settings)

    outcome = service.sync_profile(subject_id)
    again = service.sync_profile(subject_id)

    # Re-discovered data has no image anywhere
    assert any(f["type"] == "missing_data" and f["field"] == "avatar" for f in outcome["flags"])
    assert again["action"] == "skipped" and again["flags"]
    # Flags are reported, not stored
    assert store.get_flags(subject_id) == []


def test_unexpected_error_is_a_failed_outcome(make_providers, fakes, store, settings, monkeypatch):
    import pipelines.sync as sync_module

    def broken(candidate, providers):
        raise KeyError("id")

    monkeypatch.setattr(sync_module, "verify_profile", broken)
    subject_id = _stored(store)
    service = SyncService(_providers(make_providers, fakes), store, settings)

    batch = service.sync_batch([subject_id, "nobody"])

    first = batch["results"][0]
    assert first["action"] == "failed"
    assert first["error"].startswith("Unexpected error: KeyError")
    assert batch["summary"] == {"total": 2, "enriched": 0, "skipped": 0, "failed": 2}
    assert len(store.get_version_history(subject_id)) == 1


def _stored_with_channel(store):
    profile = EnrichedProfile(
        name="Omar Suleiman",
        display_name="Omar Suleiman",
        tier="community",
        confidence="medium",
        confidence_score=60,
        youtube=YouTubeContent(
            channel_id=CHANNEL.channel_id,
            channel_url=CHANNEL.url,
            channel_name="Omar Suleiman",
            subscriber_count=9000,
            subscriber_count_formatted="9K",
            video_count=700,
        ),
        pipeline=PipelineAudit(discovered_at="t0", verified_at="t1", enriched_at="t2"),
    )
    return store.save(profile).subject_id


def test_youtube_stats_refresh_updates_counters_only(make_providers, fakes, store, settings):
    subject_id = _stored_with_channel(store)
    channels = fakes["channels"](by_name={"Omar Suleiman": CHANNEL})
    service = SyncService(make_providers(channels=channels), store, settings)

    outcome = service.refresh_youtube_stats(subject_id)

    assert outcome["success"] is True and outcome["updated"] is True
    assert outcome["new_stats"] == {"subscriber_count": 12000, "video_count": 800}
    assert outcome["version"] == 2
    assert ("get_channel_by_id", CHANNEL.channel_id) in channels.calls
    assert not any(call[0] == "search_channel" for call in channels.calls)
    record = store.get_profile(subject_id)
    youtube = record["content"]["youtube"]
    assert (youtube["subscriber_count"], youtube["subscriber_count_formatted"], youtube["video_count"]) == (12000, "12K", 800)
    assert youtube["channel_name"] == "Omar Suleiman"
    assert record["stats"]["youtube_subscribers"] == 12000
    assert record["stats"]["youtube_videos"] == 800
    latest = store.get_version_history(subject_id)[0]
    assert latest.trigger == "sync"
    assert {c.field for c in latest.changes} == {"content.youtube.subscriber_count", "content.youtube.subscriber_count_formatted", "content.youtube.video_count", "stats.youtube_subscribers", "stats.youtube_videos"}

    again = service.refresh_youtube_stats(subject_id)
    assert again["action"] == "skipped" and again["updated"] is False
    assert len(store.get_version_history(subject_id)) == 2


def test_youtube_stats_refresh_without_a_channel(make_providers, fakes, store, settings):
    service = SyncService(make_providers(), store, settings)

    assert service.refresh_youtube_stats("nobody")["error"] == "Profile not found in database"
    no_channel = service.refresh_youtube_stats(_stored(store))
    assert no_channel["action"] == "skipped"
    assert no_channel["error"] == "No YouTube channel on record"


def test_youtube_stats_refresh_when_channel_is_gone(make_providers, store, settings):
    subject_id = _stored_with_channel(store)
    service = SyncService(make_providers(), store, settings)

    outcome = service.refresh_youtube_stats(subject_id)

    assert outcome["success"] is False
    assert outcome["error"] == "Failed to fetch YouTube data"
    assert len(store.get_version_history(subject_id)) == 1
