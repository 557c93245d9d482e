from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ChannelResult(BaseModel):
    """A YouTube channel resolved through the Data API."""

    channel_id: str
    title: str
    description: str | None = None
    custom_url: str | None = None
    thumbnail_url: str | None = None
    subscriber_count: int | None = None
    video_count: int | None = None
    view_count: int | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/channel/{self.channel_id}"


class VideoResult(BaseModel):
    video_id: str
    title: str
    published_at: str | None = None
    thumbnail_url: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"


class BookResult(BaseModel):
    title: str
    authors: list[str] = Field(default_factory=list)
    published_date: str | None = None
    thumbnail: str | None = None
    isbn: str | None = None
    amazon_url: str | None = None
    description: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class PodcastResult(BaseModel):
    podcast_id: str
    title: str
    artist: str | None = None
    image_url: str | None = None
    episode_count: int | None = None
    rss_url: str | None = None
    page_url: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class FeedInfo(BaseModel):
    """What the RSS prober learned about a live podcast feed."""

    url: str
    title: str | None = None
    episode_count: int = 0
    image_url: str | None = None
    page_url: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class KnowledgeGraphEntity(BaseModel):
    name: str
    description: str | None = None
    detailed_description: str | None = None
    image_url: str | None = None
    url: str | None = None
    entity_types: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")


class NewsArticle(BaseModel):
    title: str
    url: str
    description: str | None = None
    image_url: str | None = None
    source: str = "Unknown"
    published_at: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class SocialLinkHints(BaseModel):
    """Social profiles found in structured sources (channel description, Wikidata)."""

    website: str | None = None
    twitter: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    tiktok: str | None = None
    spotify: str | None = None
    sources: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")

    def is_empty(self) -> bool:
        return not any((self.website, self.twitter, self.instagram, self.facebook, self.tiktok, self.spotify))


class ProbeResult(BaseModel):
    """Outcome of an HTTP reachability probe; unreachable is a normal value, not an error."""

    url: str
    reachable: bool
    status_code: int | None = None
    final_url: str | None = None
    title: str | None = None
    error: str | None = None

    model_config = ConfigDict(frozen=True)
