from __future__ import annotations

import dataclasses
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'pipelines.steps.discover'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")
    os.environ["PROVIDER_TRACE"] = "false"


# --- provider doubles ---

class FakeChannels:
    def __init__(self, by_name=None, by_url=None, videos=None, error=None):
        self.by_name = by_name or {}
        self.by_url = by_url or {}
        self.videos = videos or []
        self.error = error
        self.calls = []

    def search_channel(self, query):
        self.calls.append(("search_channel", query))
        if self.error:
            raise self.error
        return self.by_name.get(query)

    def get_channel_by_id(self, channel_id):
        self.calls.append(("get_channel_by_id", channel_id))
        for channel in list(self.by_name.values()) + list(self.by_url.values()):
            if channel.channel_id == channel_id:
                return channel
        return None

    def resolve_url(self, url):
        self.calls.append(("resolve_url", url))
        if self.error:
            raise self.error
        return self.by_url.get(url)

    def get_recent_videos(self, channel_id, n=5):
        return self.videos[:n]


class FakeBooks:
    def __init__(self, by_name=None, error=None):
        self.by_name = by_name or {}
        self.error = error

    def search_by_author(self, name):
        if self.error:
            raise self.error
        return self.by_name.get(name, [])


class FakePodcasts:
    def __init__(self, by_name=None):
        self.by_name = by_name or {}

    def search_by_name(self, name):
        return self.by_name.get(name, [])


class FakeFeeds:
    def __init__(self, feeds=None, fallbacks=None):
        self.feeds = feeds or {}
        self.fallbacks = fallbacks or {}
        self.probed = []

    def probe_feed(self, url):
        self.probed.append(url)
        return self.feeds.get(url)

    def fallback_feed_for(self, name):
        return self.fallbacks.get(name)


class FakeKnowledgeGraph:
    def __init__(self, by_name=None):
        self.by_name = by_name or {}

    def lookup(self, name):
        return self.by_name.get(name)


class FakeResearch:
    def __init__(self, by_name=None, rewrite=None, error=None, rewrite_error=None):
        self.by_name = by_name or {}
        self.rewrite = rewrite
        self.error = error
        self.rewrite_error = rewrite_error
        self.rewrite_calls = []

    def research(self, name):
        from models import ResearchResult
        if self.error:
            raise self.error
        return self.by_name.get(name, ResearchResult())

    def rewrite_bio(self, name, bio, context):
        self.rewrite_calls.append((name, bio))
        if self.rewrite_error:
            raise self.rewrite_error
        return self.rewrite


class FakeNews:
    def search(self, name):
        return []


class FakeSocialLinks:
    def __init__(self, by_name=None):
        self.by_name = by_name or {}

    def lookup(self, name):
        from models import SocialLinkHints
        return self.by_name.get(name, SocialLinkHints())


class FakeProber:
    """Reachability by URL; anything not listed is unreachable."""

    def __init__(self, live=None, titles=None):
        self.live = set(live or ())
        self.titles = titles or {}
        self.calls = []

    def is_reachable(self, url):
        self.calls.append(url)
        return url in self.live

    def probe(self, url, fetch_title=False):
        from models import ProbeResult
        self.calls.append(url)
        if url in self.live:
            return ProbeResult(url=url, reachable=True, status_code=200, title=self.titles.get(url) if fetch_title else None)
        return ProbeResult(url=url, reachable=False, status_code=404)


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def make_providers():
    from providers import ProviderSet

    def _make(**overrides):
        parts = dict(
            channels=FakeChannels(),
            books=FakeBooks(),
            podcasts=FakePodcasts(),
            feeds=FakeFeeds(),
            knowledge_graph=FakeKnowledgeGraph(),
            research=FakeResearch(),
            news=FakeNews(),
            social_links=FakeSocialLinks(),
            prober=FakeProber(),
        )
        parts.update(overrides)
        return ProviderSet(**parts)

    return _make


@pytest.fixture
def settings(tmp_path):
    from config.settings import get_settings
    get_settings.cache_clear()
    return dataclasses.replace(
        get_settings(),
        db_path=str(tmp_path / "profiles.db"),
        discovery_timeout_seconds=5,
        batch_delay_seconds=0,
        sync_delay_seconds=0,
        refresh_delay_seconds=0,
        bio_rewrite_enabled=True,
        provider_trace=False,
    )


@pytest.fixture
def conn(tmp_path):
    from db import schema
    from db.connection import get_connection
    c = get_connection(str(tmp_path / "store.db"))
    schema.bootstrap(c)
    yield c
    c.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(conn, clock):
    from db.repos.document_store import SQLiteDocumentStore
    from db.repos.profile_store import ProfileStore
    return ProfileStore(SQLiteDocumentStore(conn), clock=clock)


@pytest.fixture
def fakes():
    """The double classes, for tests that need to configure one directly."""
    return dict(
        channels=FakeChannels,
        books=FakeBooks,
        podcasts=FakePodcasts,
        feeds=FakeFeeds,
        knowledge_graph=FakeKnowledgeGraph,
        research=FakeResearch,
        news=FakeNews,
        social_links=FakeSocialLinks,
        prober=FakeProber,
    )
