from __future__ import annotations

from models import CandidateProfile, ChannelResult, FeedInfo, VerifiedApiData
from pipelines.steps.verify import verify_profile
from services.errors import ProviderUnavailable


CHANNEL = ChannelResult(channel_id="UCabcdefghijklmnopqrstuv", title="Omar Suleiman", subscriber_count=12000)


def _candidate(**kwargs) -> CandidateProfile:
    base = dict(input_name="Omar Suleiman", name="Omar Suleiman", discovered_at="2026-01-01T00:00:00+00:00")
    base.update(kwargs)
    return CandidateProfile(**base)


def test_generic_links_are_kept_only_when_reachable(make_providers, fakes):
    prober = fakes["prober"](live={"https://omarsuleiman.com"}, titles={"https://omarsuleiman.com": "Omar Suleiman"})
    providers = make_providers(prober=prober)
    verified = verify_profile(_candidate(possible_links={
        "website": "https://omarsuleiman.com",
        "twitter": "https://twitter.com/dead_handle",
    }), providers)

    assert verified.verified_links.website.url == "https://omarsuleiman.com"
    assert verified.verified_links.website.title == "Omar Suleiman"
    assert verified.verified_links.twitter is None
    results = verified.verification_results
    assert (results.links_checked, results.links_valid, results.links_invalid) == (2, 1, 1)
    assert any(n.startswith("twitter: unreachable") for n in verified.verification_notes)


def test_youtube_reuses_channel_from_discovery(make_providers, fakes):
    channels = fakes["channels"]()
    providers = make_providers(channels=channels)
    verified = verify_profile(_candidate(
        possible_links={"youtube": CHANNEL.url},
        verified_api=VerifiedApiData(channel=CHANNEL),
    ), providers)

    assert verified.verified_links.youtube.channel_id == CHANNEL.channel_id
    assert verified.verified_links.youtube.via_fallback is False
    assert verified.verification_results.youtube_verified is True
    assert channels.calls == []


def test_youtube_falls_back_to_name_search(make_providers, fakes):
    channels = fakes["channels"](by_name={"Omar Suleiman": CHANNEL})
    providers = make_providers(channels=channels)
    verified = verify_profile(_candidate(possible_links={"youtube": "https://youtube.com/@not-a-real-handle"}), providers)

    link = verified.verified_links.youtube
    assert link.channel_id == CHANNEL.channel_id
    assert link.via_fallback is True
    # The failed claim is recovered by the fallback
    assert verified.verification_results.links_invalid == 0
    assert verified.verification_results.links_valid == 1
    assert ("resolve_url", "https://youtube.com/@not-a-real-handle") in channels.calls


def test_fallbacks_run_even_without_offered_links(make_providers, fakes):
    feed = FeedInfo(url="https://feeds.muslimcentral.com/omar-suleiman", title="Omar Suleiman", episode_count=300)
    providers = make_providers(
        channels=fakes["channels"](by_name={"Omar Suleiman": CHANNEL}),
        feeds=fakes["feeds"](fallbacks={"Omar Suleiman": feed}),
    )
    verified = verify_profile(_candidate(), providers)

    assert verified.verified_links.youtube is not None
    assert verified.verified_links.podcast.rss_url == feed.url
    assert verified.verified_links.podcast.via_fallback is True
    assert verified.verification_results.podcast_verified is True
    assert {"youtube", "rss"} <= set(verified.data_sources)


def test_claimed_feed_is_probed_first(make_providers, fakes):
    claimed = "https://example.com/feed.xml"
    feeds = fakes["feeds"](feeds={claimed: FeedInfo(url=claimed, title="My Show", episode_count=12)})
    providers = make_providers(feeds=feeds)
    verified = verify_profile(_candidate(possible_links={"podcast_rss": claimed}), providers)

    assert verified.verified_links.podcast.rss_url == claimed
    assert verified.verified_links.podcast.via_fallback is False
    assert feeds.probed == [claimed]


def test_no_link_survives_as_invalid(make_providers, fakes):
    providers = make_providers(channels=fakes["channels"](error=ProviderUnavailable("youtube", "YOUTUBE_API_KEY not configured")))
    verified = verify_profile(_candidate(possible_links={
        "youtube": "https://youtube.com/@someone",
        "instagram": "https://instagram.com/someone",
        "podcast_rss": "https://example.com/missing.xml",
    }), providers)

    assert verified.verified_links.valid_kinds() == []
    assert verified.verification_results.links_invalid == 3
    assert any("youtube: unavailable" in n for n in verified.verification_notes)
