from __future__ import annotations

import dataclasses

import pytest

from models import ResearchResult
from pipelines.profile_pipeline import run_pipeline
from pipelines.sync import SyncService
from providers.google_books import GoogleBooksProvider
from providers.youtube import YouTubeProvider
from services.errors import ProviderUnavailable


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.headers = {}
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append((url, params, timeout))
        return self.responses.pop(0)


@pytest.fixture
def quick(settings):
    return dataclasses.replace(settings, provider_min_interval_seconds=0, max_retries=1, google_books_api_key=None)


def test_books_keep_only_the_subjects_titles(quick):
    session = FakeSession(FakeResponse(200, {"items": [
        {"volumeInfo": {
            "title": "Angels in Your Presence",
            "authors": ["Omar Suleiman"],
            "publishedDate": "2018",
            "industryIdentifiers": [{"type": "ISBN_13", "identifier": "9781847741"}],
            "imageLinks": {"thumbnail": "http://books.example/a.jpg"},
        }},
        {"volumeInfo": {"title": "angels in your presence", "authors": ["Omar Suleiman"]}},
        {"volumeInfo": {"title": "Unrelated", "authors": ["Someone Else"]}},
    ]}))
    books = GoogleBooksProvider(quick, session).search_by_author("Sheikh Omar Suleiman")

    assert [b.title for b in books] == ["Angels in Your Presence"]
    assert books[0].amazon_url == "https://www.amazon.com/dp/9781847741"
    assert books[0].thumbnail.startswith("https://")
    assert session.requests[0][2] == quick.http_timeout_seconds


def test_quota_errors_surface_as_unavailable(quick):
    session = FakeSession(FakeResponse(429))
    with pytest.raises(ProviderUnavailable) as err:
        GoogleBooksProvider(quick, session).search_by_author("Omar Suleiman")
    assert err.value.status_code == 429


class RepeatingSession(FakeSession):
    """Answers every request with the same response."""

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append((url, params, timeout))
        return self.responses[0]


CHANNEL_WITHOUT_ID = {"items": [{"snippet": {"title": "Omar Suleiman", "channelTitle": "Omar Suleiman"}}]}
CLAIMED_CHANNEL = "https://www.youtube.com/channel/UCabcdefghijklmnopqrstuv"


@pytest.fixture
def youtube(quick):
    keyed = dataclasses.replace(quick, youtube_api_key="test-key")
    return YouTubeProvider(keyed, RepeatingSession(FakeResponse(200, CHANNEL_WITHOUT_ID)))


def test_channel_item_without_id_is_unavailable(youtube):
    with pytest.raises(ProviderUnavailable) as err:
        youtube.resolve_url(CLAIMED_CHANNEL)
    assert "malformed response" in err.value.reason
    assert youtube.search_channel("Omar Suleiman") is None


@pytest.mark.parametrize("payload", [[{"volumeInfo": {}}], {"items": [None]}, {"items": "not-a-list"}])
def test_unexpected_book_payloads_are_unavailable(quick, payload):
    session = FakeSession(FakeResponse(200, payload))
    with pytest.raises(ProviderUnavailable) as err:
        GoogleBooksProvider(quick, session).search_by_author("Omar Suleiman")
    assert err.value.reason.startswith("malformed response")


def _claims_channel(make_providers, fakes, youtube):
    return make_providers(
        channels=youtube,
        research=fakes["research"](by_name={"Omar Suleiman": ResearchResult.model_validate({
            "name": "Omar Suleiman",
            "possibleLinks": {"youtube": CLAIMED_CHANNEL},
        })}),
    )


def test_pipeline_survives_malformed_channel_data(make_providers, fakes, youtube, store, settings):
    providers = _claims_channel(make_providers, fakes, youtube)

    result = run_pipeline("Omar Suleiman", providers=providers, store=store, settings=settings)

    assert result["success"] is True, result["message"]
    assert result["storage_record"]["social_links"]["youtube"] is None
    notes = result["stage_report"]["verification"]["notes"]
    assert any("youtube: unavailable (malformed response" in n for n in notes)


def test_sync_batch_survives_malformed_channel_data(make_providers, fakes, youtube, store, settings):
    providers = _claims_channel(make_providers, fakes, youtube)
    saved = run_pipeline("Omar Suleiman", providers=make_providers(), store=store, settings=settings)

    batch = SyncService(providers, store, settings).sync_batch([saved["subject_id"], "missing-one"])

    assert batch["summary"]["total"] == 2
    assert batch["results"][0]["success"] is True
    assert batch["results"][1]["error"] == "Profile not found in database"
