from __future__ import annotations

import copy
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple


Filter = Tuple[str, str, Any]

_OPS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_path(data: Mapping[str, Any], path: str) -> Any:
    node: Any = data
    for part in path.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
    return node


def _deep_merge(base: Dict[str, Any], incoming: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in incoming.items():
        if isinstance(value, Mapping) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


class SQLiteDocumentStore:
    """Document-style store (get/set/update/query) over a single SQLite table.

    All access goes through one re-entrant lock; transaction() groups several
    writes into one SQLite transaction so they commit or roll back together.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._lock = threading.RLock()
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator["SQLiteDocumentStore"]:
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self.conn.execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outermost:
                    self.conn.execute("ROLLBACK")
                raise
            self._depth -= 1
            if outermost:
                self.conn.execute("COMMIT")

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            cur = self.conn.execute(
                "SELECT data_json FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            row = cur.fetchone()
        return json.loads(row[0]) if row else None

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], merge: bool = False) -> None:
        with self.transaction():
            existing = self.get(collection, doc_id) if merge else None
            payload = _deep_merge(existing, data) if existing is not None else dict(data)
            now = _now_iso()
            self.conn.execute(
                "INSERT INTO documents (collection, doc_id, data_json, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(collection, doc_id) DO UPDATE SET data_json = excluded.data_json, updated_at = excluded.updated_at",
                (collection, doc_id, json.dumps(payload, ensure_ascii=False), now, now),
            )

    def update(self, collection: str, doc_id: str, updates: Mapping[str, Any]) -> None:
        """Write nested values addressed by dotted paths; the document must exist."""
        with self.transaction():
            existing = self.get(collection, doc_id)
            if existing is None:
                raise KeyError(f"{collection}/{doc_id} does not exist")
            for path, value in updates.items():
                node = existing
                *parents, leaf = path.split(".")
                for part in parents:
                    if not isinstance(node.get(part), dict):
                        node[part] = {}
                    node = node[part]
                node[leaf] = copy.deepcopy(value)
            self.conn.execute(
                "UPDATE documents SET data_json = ?, updated_at = ? WHERE collection = ? AND doc_id = ?",
                (json.dumps(existing, ensure_ascii=False), _now_iso(), collection, doc_id),
            )

    def delete(self, collection: str, doc_id: str) -> None:
        with self.transaction():
            self.conn.execute("DELETE FROM documents WHERE collection = ? AND doc_id = ?", (collection, doc_id))

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, Dict[str, Any]]]:
        """Return (doc_id, data) pairs matching every filter, optionally ordered and capped."""
        for _, op, _ in filters:
            if op not in _OPS:
                raise ValueError(f"Unsupported filter operator: {op}")
        with self._lock:
            cur = self.conn.execute(
                "SELECT doc_id, data_json FROM documents WHERE collection = ?", (collection,)
            )
            rows = cur.fetchall()
        docs = []
        for doc_id, data_json in rows:
            data = json.loads(data_json)
            if all(_OPS[op](_get_path(data, path), value) for path, op, value in filters):
                docs.append((doc_id, data))
        if order_by:
            present = [d for d in docs if _get_path(d[1], order_by) is not None]
            missing = [d for d in docs if _get_path(d[1], order_by) is None]
            present.sort(key=lambda d: _get_path(d[1], order_by), reverse=descending)
            docs = present + missing
        if limit is not None:
            docs = docs[: max(0, limit)]
        return docs
