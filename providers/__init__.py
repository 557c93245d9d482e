from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from config.settings import Settings, get_settings
from ports import (
    BookCatalogPort,
    ChannelProviderPort,
    FeedProberPort,
    KnowledgeGraphPort,
    LinkProberPort,
    NewsPort,
    PodcastCatalogPort,
    ResearchPort,
    SocialLinksPort,
)
from services.cache import TTLCache

# Importing the adapter modules registers them
from . import google_books, knowledge_graph, link_prober, news, podcasts, research, social_links, youtube  # noqa: F401
from .registry import available_providers, get_provider, register


@dataclass
class ProviderSet:
    """The adapters one pipeline run talks to. Any of them may be a test double."""

    channels: ChannelProviderPort
    books: BookCatalogPort
    podcasts: PodcastCatalogPort
    feeds: FeedProberPort
    knowledge_graph: KnowledgeGraphPort
    research: Optional[ResearchPort]
    news: NewsPort
    social_links: SocialLinksPort
    prober: LinkProberPort


def build_provider_set(cache: Optional[TTLCache] = None, settings: Optional[Settings] = None) -> ProviderSet:
    """Construct the live adapters from the registry; channel, book and podcast lookups share the cache."""
    settings = settings or get_settings()
    return ProviderSet(
        channels=get_provider("youtube", settings=settings, cache=cache),
        books=get_provider("google_books", settings=settings, cache=cache),
        podcasts=get_provider("itunes", settings=settings, cache=cache),
        feeds=get_provider("rss", settings=settings),
        knowledge_graph=get_provider("knowledge_graph", settings=settings),
        research=get_provider("research", settings=settings) if settings.research_enabled else None,
        news=get_provider("newsapi", settings=settings),
        social_links=get_provider("wikidata", settings=settings),
        prober=get_provider("link_probe", settings=settings),
    )


__all__ = [
    "ProviderSet",
    "build_provider_set",
    "available_providers",
    "get_provider",
    "register",
]
