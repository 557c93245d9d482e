from __future__ import annotations

from typing import List, Optional, Protocol

from models import (
    BookResult,
    ChannelResult,
    FeedInfo,
    KnowledgeGraphEntity,
    NewsArticle,
    PodcastResult,
    ProbeResult,
    ResearchResult,
    RewriteResult,
    SocialLinkHints,
    VideoResult,
)


class ChannelProviderPort(Protocol):
    provider_name: str

    def search_channel(self, query: str) -> Optional[ChannelResult]:
        ...

    def get_channel_by_id(self, channel_id: str) -> Optional[ChannelResult]:
        ...

    def resolve_url(self, url: str) -> Optional[ChannelResult]:
        ...

    def get_recent_videos(self, channel_id: str, n: int = 5) -> List[VideoResult]:
        ...


class BookCatalogPort(Protocol):
    provider_name: str

    def search_by_author(self, name: str) -> List[BookResult]:
        ...


class PodcastCatalogPort(Protocol):
    provider_name: str

    def search_by_name(self, name: str) -> List[PodcastResult]:
        ...


class FeedProberPort(Protocol):
    provider_name: str

    def probe_feed(self, url: str) -> Optional[FeedInfo]:
        ...

    def fallback_feed_for(self, name: str) -> Optional[FeedInfo]:
        ...


class KnowledgeGraphPort(Protocol):
    provider_name: str

    def lookup(self, name: str) -> Optional[KnowledgeGraphEntity]:
        ...


class ResearchPort(Protocol):
    provider_name: str

    def research(self, name: str) -> ResearchResult:
        ...

    def rewrite_bio(self, name: str, bio: Optional[str], context: dict) -> Optional[RewriteResult]:
        ...


class NewsPort(Protocol):
    provider_name: str

    def search(self, name: str) -> List[NewsArticle]:
        ...


class SocialLinksPort(Protocol):
    provider_name: str

    def lookup(self, name: str) -> SocialLinkHints:
        ...


class LinkProberPort(Protocol):
    def is_reachable(self, url: str) -> bool:
        ...

    def probe(self, url: str, fetch_title: bool = False) -> ProbeResult:
        ...
