from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Provider credentials
    youtube_api_key: str | None
    google_books_api_key: str | None
    google_api_key: str | None
    newsapi_key: str | None
    perplexity_api_key: str | None
    openai_api_key: str | None

    # Models
    openai_model: str
    research_model: str

    # Core/runtime
    db_path: str
    run_env: str
    log_level: str

    # Cache
    cache_ttl_days: int

    # Timeouts/retries
    http_timeout_seconds: float
    probe_timeout_seconds: float
    max_retries: int
    provider_min_interval_seconds: float

    # Discovery fan-out
    discovery_concurrency: int
    discovery_timeout_seconds: float

    # Batch backpressure
    batch_max_names: int
    batch_delay_seconds: float
    sync_delay_seconds: float
    refresh_delay_seconds: float
    refresh_batch_size: int
    refresh_claim_ttl_minutes: int

    # Endpoints
    youtube_api_url: str = "https://www.googleapis.com/youtube/v3"
    google_books_url: str = "https://www.googleapis.com/books/v1/volumes"
    itunes_search_url: str = "https://itunes.apple.com/search"
    knowledge_graph_url: str = "https://kgsearch.googleapis.com/v1/entities:search"
    newsapi_url: str = "https://newsapi.org/v2/everything"
    wikidata_sparql_url: str = "https://query.wikidata.org/sparql"
    perplexity_base_url: str = "https://api.perplexity.ai"
    podcast_feed_fallback_base: str = "https://feeds.muslimcentral.com"
    podcast_page_fallback_base: str = "https://muslimcentral.com/audio"
    youtube_search_hint: str = ""
    user_agent: str = "creator-profile-pipeline/1.0"

    # Feature flags
    research_enabled: bool = True
    bio_rewrite_enabled: bool = True

    # Logging/tracing
    provider_trace: bool = False
    provider_log_path: str = "logs/provider_calls.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    return Settings(
        youtube_api_key=os.getenv("YOUTUBE_API_KEY"),
        google_books_api_key=os.getenv("GOOGLE_BOOKS_API_KEY"),
        google_api_key=os.getenv("GOOGLE_API_KEY"),
        newsapi_key=os.getenv("NEWSAPI_KEY"),
        perplexity_api_key=os.getenv("PERPLEXITY_API_KEY"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        research_model=os.getenv("RESEARCH_MODEL", "sonar-pro"),
        db_path=os.getenv("DB_PATH", "profiles.db"),
        run_env=os.getenv("RUN_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        cache_ttl_days=int(os.getenv("CACHE_TTL_DAYS", "7")),
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "10")),
        probe_timeout_seconds=float(os.getenv("PROBE_TIMEOUT_SECONDS", "5")),
        max_retries=int(os.getenv("MAX_RETRIES", "2")),
        provider_min_interval_seconds=float(os.getenv("PROVIDER_MIN_INTERVAL_SECONDS", "0.5")),
        discovery_concurrency=int(os.getenv("DISCOVERY_CONCURRENCY", "7")),
        discovery_timeout_seconds=float(os.getenv("DISCOVERY_TIMEOUT_SECONDS", "90")),
        batch_max_names=int(os.getenv("BATCH_MAX_NAMES", "20")),
        batch_delay_seconds=float(os.getenv("BATCH_DELAY_SECONDS", "3")),
        sync_delay_seconds=float(os.getenv("SYNC_DELAY_SECONDS", "2")),
        refresh_delay_seconds=float(os.getenv("REFRESH_DELAY_SECONDS", "2")),
        refresh_batch_size=int(os.getenv("REFRESH_BATCH_SIZE", "10")),
        refresh_claim_ttl_minutes=int(os.getenv("REFRESH_CLAIM_TTL_MINUTES", "30")),
        podcast_feed_fallback_base=os.getenv("PODCAST_FEED_FALLBACK_BASE", "https://feeds.muslimcentral.com"),
        podcast_page_fallback_base=os.getenv("PODCAST_PAGE_FALLBACK_BASE", "https://muslimcentral.com/audio"),
        youtube_search_hint=os.getenv("YOUTUBE_SEARCH_HINT", ""),
        user_agent=os.getenv("HTTP_USER_AGENT", "creator-profile-pipeline/1.0"),
        research_enabled=_as_bool(os.getenv("RESEARCH_ENABLED"), True),
        bio_rewrite_enabled=_as_bool(os.getenv("BIO_REWRITE_ENABLED"), True),
        provider_trace=_as_bool(os.getenv("PROVIDER_TRACE")),
        provider_log_path=os.getenv("PROVIDER_LOG_PATH", "logs/provider_calls.jsonl"),
    )
