"""Stage records: CandidateProfile -> VerifiedProfile -> EnrichedProfile.

Each stage produces a new immutable record; nothing is filled in place.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .provider_results import (
    BookResult,
    ChannelResult,
    KnowledgeGraphEntity,
    NewsArticle,
    PodcastResult,
    VideoResult,
)
from .research_result import BookClaim, ContentClaim, PossibleLinks


Confidence = Literal["high", "medium", "low"]
Tier = Literal["verified", "rising", "community"]

LINK_KINDS = ("website", "youtube", "twitter", "instagram", "facebook", "tiktok", "podcast", "spotify")


class VerifiedApiData(BaseModel):
    """Facts obtained directly from structured providers."""

    channel: ChannelResult | None = None
    recent_videos: list[VideoResult] = Field(default_factory=list)
    books: list[BookResult] = Field(default_factory=list)
    podcasts: list[PodcastResult] = Field(default_factory=list)
    knowledge_graph: KnowledgeGraphEntity | None = None
    news: list[NewsArticle] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class CandidateProfile(BaseModel):
    """Discovery output. Every field is optional because no source is guaranteed."""

    input_name: str
    name: str | None = None
    display_name: str | None = None
    title: str | None = None
    short_bio: str | None = None
    full_bio: str | None = None
    category: str | None = None
    gender: str | None = None
    region: str | None = None
    country: str | None = None
    country_flag: str | None = None
    location: str | None = None
    languages: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    affiliations: list[str] = Field(default_factory=list)

    verified_api: VerifiedApiData = Field(default_factory=VerifiedApiData)
    possible_links: PossibleLinks = Field(default_factory=PossibleLinks)
    possible_books: list[BookClaim] = Field(default_factory=list)
    possible_audio_books: list[ContentClaim] = Field(default_factory=list)
    possible_ebooks: list[ContentClaim] = Field(default_factory=list)
    possible_courses: list[ContentClaim] = Field(default_factory=list)

    possible_image_url: str | None = None
    image_search_query: str | None = None
    is_historical: bool = False
    lifespan: str | None = None
    note: str | None = None

    # provider -> the name that provider reported for the subject
    name_variants: dict[str, str] = Field(default_factory=dict)
    data_sources: list[str] = Field(default_factory=list)
    discovery_notes: list[str] = Field(default_factory=list)
    cancelled: bool = False
    discovered_at: str

    model_config = ConfigDict(frozen=True)

    @property
    def best_name(self) -> str:
        return self.display_name or self.name or self.input_name


class WebsiteLink(BaseModel):
    url: str
    status: Literal["valid"] = "valid"
    title: str | None = None
    http_status: int | None = None

    model_config = ConfigDict(frozen=True)


class HandleLink(BaseModel):
    url: str
    status: Literal["valid"] = "valid"
    handle: str | None = None
    http_status: int | None = None

    model_config = ConfigDict(frozen=True)


class YouTubeLink(BaseModel):
    url: str
    status: Literal["valid"] = "valid"
    channel_id: str
    channel_name: str
    subscriber_count: int | None = None
    video_count: int | None = None
    thumbnail_url: str | None = None
    description: str | None = None
    via_fallback: bool = False

    model_config = ConfigDict(frozen=True)


class PodcastLink(BaseModel):
    url: str
    status: Literal["valid"] = "valid"
    rss_url: str
    title: str | None = None
    episode_count: int = 0
    image_url: str | None = None
    via_fallback: bool = False

    model_config = ConfigDict(frozen=True)


class VerifiedLinks(BaseModel):
    website: WebsiteLink | None = None
    youtube: YouTubeLink | None = None
    twitter: HandleLink | None = None
    instagram: HandleLink | None = None
    facebook: HandleLink | None = None
    tiktok: HandleLink | None = None
    podcast: PodcastLink | None = None
    spotify: HandleLink | None = None

    model_config = ConfigDict(frozen=True)

    def valid_kinds(self) -> list[str]:
        return [kind for kind in LINK_KINDS if getattr(self, kind) is not None]


class VerificationResults(BaseModel):
    links_checked: int = 0
    links_valid: int = 0
    links_invalid: int = 0
    youtube_verified: bool = False
    podcast_verified: bool = False
    spotify_verified: bool = False

    model_config = ConfigDict(frozen=True)


class VerifiedProfile(CandidateProfile):
    """Verification output: only links that passed their check survive."""

    verified_links: VerifiedLinks = Field(default_factory=VerifiedLinks)
    verification_results: VerificationResults = Field(default_factory=VerificationResults)
    verification_notes: list[str] = Field(default_factory=list)
    verified_at: str


class SocialLinks(BaseModel):
    website: str | None = None
    youtube: str | None = None
    twitter: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    tiktok: str | None = None
    podcast: str | None = None
    spotify: str | None = None

    model_config = ConfigDict(frozen=True)

    def populated(self) -> dict[str, str]:
        return {k: v for k, v in self.model_dump().items() if v}


class YouTubeContent(BaseModel):
    channel_id: str
    channel_url: str
    channel_name: str
    subscriber_count: int | None = None
    subscriber_count_formatted: str | None = None
    video_count: int | None = None
    avatar_url: str | None = None
    recent_videos: list[VideoResult] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class PodcastContent(BaseModel):
    title: str | None = None
    url: str
    rss_url: str | None = None
    episode_count: int | None = None
    image_url: str | None = None

    model_config = ConfigDict(frozen=True)


class Book(BaseModel):
    title: str
    authors: list[str] = Field(default_factory=list)
    year: int | None = None
    published_date: str | None = None
    isbn: str | None = None
    amazon_url: str | None = None
    thumbnail: str | None = None
    source: Literal["google_books", "research"] = "google_books"

    model_config = ConfigDict(frozen=True)


class PipelineAudit(BaseModel):
    discovered_at: str
    verified_at: str
    enriched_at: str
    score_breakdown: list[tuple[str, int]] = Field(default_factory=list)
    bio_rewritten: bool = False

    model_config = ConfigDict(frozen=True)


class EnrichedProfile(BaseModel):
    """Terminal, storage-ready profile."""

    name: str
    display_name: str
    title: str | None = None
    short_bio: str | None = None
    full_bio: str | None = None
    category: str | None = None
    tier: Tier
    gender: str | None = None
    region: str | None = None
    country: str | None = None
    country_flag: str | None = None
    location: str | None = None
    languages: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    affiliations: list[str] = Field(default_factory=list)

    avatar_url: str | None = None
    image_search_query: str | None = None
    social_links: SocialLinks = Field(default_factory=SocialLinks)

    youtube: YouTubeContent | None = None
    podcast: PodcastContent | None = None
    books: list[Book] = Field(default_factory=list)
    courses: list[ContentClaim] = Field(default_factory=list)
    audio_books: list[ContentClaim] = Field(default_factory=list)
    ebooks: list[ContentClaim] = Field(default_factory=list)
    news: list[NewsArticle] = Field(default_factory=list)

    is_historical: bool = False
    lifespan: str | None = None
    note: str | None = None

    confidence: Confidence
    confidence_score: int = Field(ge=0, le=100)
    data_sources: list[str] = Field(default_factory=list)
    name_variants: dict[str, str] = Field(default_factory=dict)
    enrichment_notes: list[str] = Field(default_factory=list)
    pipeline: PipelineAudit

    model_config = ConfigDict(frozen=True)
