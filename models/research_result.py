from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _none_to_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return value


class PossibleLinks(BaseModel):
    website: str | None = None
    youtube: str | None = None
    twitter: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    tiktok: str | None = None
    podcast: str | None = None
    podcast_rss: str | None = Field(default=None, alias="podcastRss")
    spotify: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and (not value.strip() or value.strip().lower() in ("null", "none", "n/a")):
            return None
        return value


class BookClaim(BaseModel):
    title: str
    year: int | None = None
    amazon_url: str | None = Field(default=None, alias="amazonUrl")

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("year", mode="before")
    @classmethod
    def _loose_year(cls, value: Any) -> Any:
        if value is None or isinstance(value, int):
            return value
        m = re.search(r"\d{4}", str(value))
        return int(m.group(0)) if m else None


class ContentClaim(BaseModel):
    title: str
    platform: str | None = None
    url: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class ResearchResult(BaseModel):
    """Structured output expected from the free-text research provider."""

    name: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")
    title: str | None = None
    short_bio: str | None = Field(default=None, alias="shortBio")
    full_bio: str | None = Field(default=None, alias="fullBio")
    category: str | None = None
    gender: str | None = None
    region: str | None = None
    country: str | None = None
    country_flag: str | None = Field(default=None, alias="countryFlag")
    location: str | None = None
    languages: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    affiliations: list[str] = Field(default_factory=list)
    possible_links: PossibleLinks = Field(default_factory=PossibleLinks, alias="possibleLinks")
    possible_books: list[BookClaim] = Field(default_factory=list, alias="possibleBooks")
    possible_audio_books: list[ContentClaim] = Field(default_factory=list, alias="possibleAudioBooks")
    possible_ebooks: list[ContentClaim] = Field(default_factory=list, alias="possibleEbooks")
    possible_courses: list[ContentClaim] = Field(default_factory=list, alias="possibleCourses")
    possible_image_url: str | None = Field(default=None, alias="possibleImageUrl")
    image_search_query: str | None = Field(default=None, alias="imageSearchQuery")
    is_historical: bool = Field(default=False, alias="isHistorical")
    lifespan: str | None = None
    note: str | None = None
    raw_confidence: str | None = Field(default=None, alias="rawConfidence")
    discovery_notes: list[str] = Field(default_factory=list, alias="discoveryNotes")

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator(
        "languages", "topics", "affiliations", "possible_books", "possible_audio_books",
        "possible_ebooks", "possible_courses", "discovery_notes",
        mode="before",
    )
    @classmethod
    def _lists(cls, value: Any) -> Any:
        return _none_to_list(value)

    @field_validator("possible_links", mode="before")
    @classmethod
    def _links(cls, value: Any) -> Any:
        return value or {}

    @field_validator("is_historical", mode="before")
    @classmethod
    def _historical(cls, value: Any) -> Any:
        return bool(value) if value is not None else False

    def is_empty(self) -> bool:
        return not any((self.name, self.display_name, self.full_bio, self.short_bio, self.category, self.region))


class RewriteResult(BaseModel):
    """Output of the biography rewrite call."""

    improved_bio: str | None = Field(default=None, alias="improvedBio")
    improved_short_bio: str | None = Field(default=None, alias="improvedShortBio")
    suggested_category: str | None = Field(default=None, alias="suggestedCategory")
    suggested_topics: list[str] = Field(default_factory=list, alias="suggestedTopics")

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("suggested_topics", mode="before")
    @classmethod
    def _topics(cls, value: Any) -> Any:
        return _none_to_list(value)
