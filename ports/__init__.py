from .document_store import DocumentStorePort
from .llm import LLMClientPort
from .providers import (
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

__all__ = [
    "DocumentStorePort",
    "LLMClientPort",
    "BookCatalogPort",
    "ChannelProviderPort",
    "FeedProberPort",
    "KnowledgeGraphPort",
    "LinkProberPort",
    "NewsPort",
    "PodcastCatalogPort",
    "ResearchPort",
    "SocialLinksPort",
]
