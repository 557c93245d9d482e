from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple


class DocumentStorePort(Protocol):
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], merge: bool = False) -> None:
        ...

    def update(self, collection: str, doc_id: str, updates: Mapping[str, Any]) -> None:
        ...

    def query(
        self,
        collection: str,
        filters: Sequence[Tuple[str, str, Any]] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, Dict[str, Any]]]:
        ...

    def transaction(self) -> AbstractContextManager:
        ...
