"""
Document store backends.

``STORAGE_BACKEND=sql`` (default) persists through SQLAlchemy,
``STORAGE_BACKEND=mongo`` through pymongo.
"""

from __future__ import annotations

from ..core.config import settings
from .base import BUS_IMAGES, DETECTION_COLLECTIONS, USERS, Document, DocumentStore, Filter, Sort
from .mongo import MongoDocumentStore
from .sql import SqlDocumentStore


def get_document_store() -> DocumentStore:
    backend = settings.storage_backend.lower()
    if backend == "mongo":
        return MongoDocumentStore(settings.mongo_uri, settings.mongo_db)
    return SqlDocumentStore()


__all__ = [
    "BUS_IMAGES",
    "DETECTION_COLLECTIONS",
    "USERS",
    "Document",
    "DocumentStore",
    "Filter",
    "Sort",
    "MongoDocumentStore",
    "SqlDocumentStore",
    "get_document_store",
]
