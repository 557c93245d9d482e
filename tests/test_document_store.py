from __future__ import annotations

import sqlite3

import pytest

from db.repos.document_store import SQLiteDocumentStore


def test_set_get_and_merge(conn):
    docs = SQLiteDocumentStore(conn)
    docs.set("creators", "a", {"profile": {"name": "A", "bio": "x"}, "tier": "rising"})
    docs.set("creators", "a", {"profile": {"bio": "y"}}, merge=True)
    assert docs.get("creators", "a") == {"profile": {"name": "A", "bio": "y"}, "tier": "rising"}

    docs.set("creators", "a", {"tier": "verified"})
    assert docs.get("creators", "a") == {"tier": "verified"}
    assert docs.get("creators", "missing") is None


def test_update_writes_nested_paths(conn):
    docs = SQLiteDocumentStore(conn)
    docs.set("creators", "a", {"profile": {"name": "A"}})
    docs.update("creators", "a", {"profile.bio": "hello", "stats.books_published": 2})
    assert docs.get("creators", "a") == {"profile": {"name": "A", "bio": "hello"}, "stats": {"books_published": 2}}
    with pytest.raises(KeyError):
        docs.update("creators", "nope", {"x": 1})


def test_query_filters_order_and_limit(conn):
    docs = SQLiteDocumentStore(conn)
    for i, score in enumerate([30, 90, 55, None]):
        docs.set("schedules", f"s{i}", {"score": score, "tags": ["a"] if i % 2 else []})

    ids = [doc_id for doc_id, _ in docs.query("schedules", [("score", ">=", 40)], order_by="score")]
    assert ids == ["s2", "s1"]
    ids = [doc_id for doc_id, _ in docs.query("schedules", order_by="score", descending=True, limit=2)]
    assert ids == ["s1", "s2"]
    ids = [doc_id for doc_id, _ in docs.query("schedules", [("tags", "array_contains", "a")])]
    assert sorted(ids) == ["s1", "s3"]
    with pytest.raises(ValueError):
        docs.query("schedules", [("score", "~", 1)])


def test_transaction_rolls_back_every_write(conn):
    docs = SQLiteDocumentStore(conn)
    with pytest.raises(sqlite3.OperationalError):
        with docs.transaction():
            docs.set("creators", "a", {"v": 1})
            docs.set("profile_versions", "a_v1", {"v": 1})
            raise sqlite3.OperationalError("disk I/O error")
    assert docs.get("creators", "a") is None
    assert docs.get("profile_versions", "a_v1") is None
