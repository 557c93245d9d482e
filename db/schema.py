from __future__ import annotations

import sqlite3


def bootstrap(conn: sqlite3.Connection) -> None:
    """Create the document and cache tables plus their indexes (idempotent)."""
    cur = conn.cursor()

    # Document store: one JSON document per (collection, doc_id)
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS documents (\n"
            "  collection TEXT NOT NULL,\n"
            "  doc_id TEXT NOT NULL,\n"
            "  data_json TEXT NOT NULL,\n"
            "  created_at TEXT NOT NULL,\n"
            "  updated_at TEXT NOT NULL,\n"
            "  PRIMARY KEY (collection, doc_id)\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);")

    # Provider response cache with per-entry TTL
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS api_cache (\n"
            "  cache_key TEXT PRIMARY KEY,\n"
            "  value_json TEXT NOT NULL,\n"
            "  cached_at REAL NOT NULL,\n"
            "  expires_at REAL NOT NULL\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_api_cache_expires ON api_cache(expires_at);")
