from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from typing import Any, Callable, Optional

from config.settings import get_settings
from db import schema
from services.name_utils import normalize_name


logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60


def cache_key(provider: str, operation: str, subject: str, normalize: bool = True) -> str:
    """Cache key for one provider call. With normalize=False the subject keeps its case (channel ids)."""
    value = (normalize_name(subject) or subject.strip().lower()) if normalize else subject.strip()
    return f"{provider}:{operation}:{value}"


class TTLCache:
    """Key/TTL-value store for provider responses, persisted in SQLite.

    Values are JSON-serialisable structures derived only from the external
    source, so concurrent writers to one key are safe as last-write-wins.
    """

    def __init__(self, conn: sqlite3.Connection, default_ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.time):
        self.conn = conn
        schema.bootstrap(conn)
        if default_ttl_seconds is None:
            default_ttl_seconds = get_settings().cache_ttl_days * DAY_SECONDS
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            row = self.conn.execute(
                "SELECT value_json, expires_at FROM api_cache WHERE cache_key = ?", (key,)
            ).fetchone()
            if row is None or row[1] <= now:
                self.misses += 1
                return None
            self.hits += 1
        return json.loads(row[0])

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        now = self._clock()
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        payload = json.dumps(value, ensure_ascii=False)
        with self._lock:
            self.conn.execute(
                "INSERT INTO api_cache (cache_key, value_json, cached_at, expires_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(cache_key) DO UPDATE SET value_json = excluded.value_json, "
                "cached_at = excluded.cached_at, expires_at = excluded.expires_at",
                (key, payload, now, now + ttl),
            )

    def get_or_fetch(self, key: str, fetch: Callable[[], Any], ttl_seconds: Optional[float] = None) -> Any:
        """Return the cached value or call fetch; only non-empty results are stored."""
        cached = self.get(key)
        if cached is not None:
            logger.debug("cache hit %s", key, extra={"status": "hit"})
            return cached
        value = fetch()
        if value:
            self.set(key, value, ttl_seconds)
        return value

    def purge_expired(self) -> int:
        with self._lock:
            cur = self.conn.execute("DELETE FROM api_cache WHERE expires_at <= ?", (self._clock(),))
        return cur.rowcount
