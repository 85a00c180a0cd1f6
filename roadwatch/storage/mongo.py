"""
MongoDB document store backed by pymongo.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ..core.errors import StorageError
from .base import BUS_IMAGES, DETECTION_COLLECTIONS, USERS, Document, DocumentStore, Filter, Sort


logger = logging.getLogger("storage")


def _object_id(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return value


def to_mongo_filter(flt: Optional[Filter]) -> Dict[str, Any]:
    """Translate the store filter language into a MongoDB query document."""
    query: Dict[str, Any] = {}
    for key, value in (flt or {}).items():
        if key == "$or":
            query["$or"] = [to_mongo_filter(sub) for sub in value]
            continue
        if key == "id":
            key = "_id"
            if isinstance(value, (list, tuple, set)):
                value = [_object_id(v) for v in value]
            elif value is not None:
                value = _object_id(value)
        if isinstance(value, (list, tuple, set)):
            query[key] = {"$in": list(value)}
        else:
            query[key] = value
    return query


def to_mongo_sort(sort: Optional[Sort]) -> list:
    return [("_id" if key == "id" else key, DESCENDING if direction < 0 else ASCENDING) for key, direction in sort or ()]


def _to_document(raw: Mapping[str, Any]) -> Document:
    doc = dict(raw)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


class MongoDocumentStore(DocumentStore):
    backend = "mongo"

    def __init__(self, uri: str | None = None, db_name: str | None = None, *, database: Database | None = None) -> None:
        if database is None:
            if not uri or not db_name:
                raise RuntimeError("MONGO_URI and MONGO_DB are required for STORAGE_BACKEND=mongo")
            self.client = MongoClient(uri, serverSelectionTimeoutMS=5000)
            database = self.client[db_name]
        else:
            self.client = None
        self.db = database

    def insert(self, collection: str, record: Mapping[str, Any]) -> str:
        doc = {key: value for key, value in record.items() if key != "id"}
        try:
            return str(self.db[collection].insert_one(doc).inserted_id)
        except PyMongoError as exc:
            raise StorageError(f"Insert into {collection} failed: {exc}", collection=collection) from exc

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        try:
            cursor = self.db[collection].find(to_mongo_filter(filter))
            if sort:
                cursor = cursor.sort(to_mongo_sort(sort))
            if skip:
                cursor = cursor.skip(skip)
            if limit is not None:
                cursor = cursor.limit(limit)
            return [_to_document(raw) for raw in cursor]
        except PyMongoError as exc:
            raise StorageError(f"Query on {collection} failed: {exc}", collection=collection) from exc

    def find_one(self, collection: str, filter: Filter, sort: Optional[Sort] = None) -> Optional[Document]:
        try:
            kwargs = {"sort": to_mongo_sort(sort)} if sort else {}
            raw = self.db[collection].find_one(to_mongo_filter(filter), **kwargs)
        except PyMongoError as exc:
            raise StorageError(f"Query on {collection} failed: {exc}", collection=collection) from exc
        return _to_document(raw) if raw is not None else None

    def exists(self, collection: str, filter: Filter) -> bool:
        try:
            doc = self.db[collection].find_one(to_mongo_filter(filter), projection={"_id": 1})
        except PyMongoError as exc:
            raise StorageError(f"Query on {collection} failed: {exc}", collection=collection) from exc
        return doc is not None

    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        try:
            return int(self.db[collection].count_documents(to_mongo_filter(filter)))
        except PyMongoError as exc:
            raise StorageError(f"Count on {collection} failed: {exc}", collection=collection) from exc

    def update_one(self, collection: str, filter: Filter, values: Mapping[str, Any]) -> bool:
        update = {key: value for key, value in values.items() if key != "id"}
        try:
            result = self.db[collection].update_one(to_mongo_filter(filter), {"$set": update})
        except PyMongoError as exc:
            raise StorageError(f"Update on {collection} failed: {exc}", collection=collection) from exc
        return result.matched_count > 0

    def delete_many(self, collection: str, filter: Filter) -> int:
        try:
            return int(self.db[collection].delete_many(to_mongo_filter(filter)).deleted_count)
        except PyMongoError as exc:
            raise StorageError(f"Delete on {collection} failed: {exc}", collection=collection) from exc

    def ping(self) -> bool:
        try:
            self.db.command("ping")
            return True
        except PyMongoError as exc:
            logger.warning("MongoDB ping failed: %s", exc)
            return False

    def ensure_schema(self) -> None:
        try:
            for name in (*DETECTION_COLLECTIONS, BUS_IMAGES):
                self.db[name].create_index([("sessionId", ASCENDING), ("timestamp", DESCENDING)])
                self.db[name].create_index([("userId", ASCENDING)])
            self.db[USERS].create_index([("email", ASCENDING)], unique=True)
            self.db[USERS].create_index([("userId", ASCENDING)], unique=True)
        except PyMongoError as exc:
            raise StorageError(f"Index creation failed: {exc}") from exc
