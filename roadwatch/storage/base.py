"""
Document store interface used by ingestion, users and read endpoints.

Filters follow a small subset of MongoDB query syntax so the same filter
works against every backend:

* ``{"field": value}`` equality, where ``None`` matches null or missing;
* ``{"field": [a, b, None]}`` membership;
* ``{"$or": [filter, ...]}`` disjunction.

Sorts are lists of ``(field, 1 | -1)`` pairs. Records are returned as plain
dicts with the backend identifier under ``"id"``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


Document = Dict[str, Any]
Filter = Mapping[str, Any]
Sort = Sequence[Tuple[str, int]]

DETECTION_COLLECTIONS = ("buses", "vehicles", "others")
BUS_IMAGES = "bus_images"
USERS = "users"


class DocumentStore:
    backend = "abstract"

    def insert(self, collection: str, record: Mapping[str, Any]) -> str:
        raise NotImplementedError

    def find_one(self, collection: str, filter: Filter, sort: Optional[Sort] = None) -> Optional[Document]:
        raise NotImplementedError

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        raise NotImplementedError

    def exists(self, collection: str, filter: Filter) -> bool:
        return self.find_one(collection, filter) is not None

    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        raise NotImplementedError

    def update_one(self, collection: str, filter: Filter, values: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def delete_many(self, collection: str, filter: Filter) -> int:
        raise NotImplementedError

    def ping(self) -> bool:
        raise NotImplementedError

    def ensure_schema(self) -> None:
        """Create tables or indexes. Backends without a schema do nothing."""
        return None
