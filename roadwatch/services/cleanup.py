"""
Maintenance over persisted detection records.
"""

from __future__ import annotations

import logging
from typing import Dict

from ..core.errors import StorageError, log_exception
from ..storage import BUS_IMAGES, DETECTION_COLLECTIONS, USERS, DocumentStore


logger = logging.getLogger("cleanup")

INCOMPLETE_FILTER = {
    "$or": [
        {"gpsLocation": ["", "unknown,unknown", None]},
        {"gpsLatitude": None},
        {"gpsLongitude": None},
        {"userId": ["", None]},
    ]
}


def cleanup_incomplete_entries(store: DocumentStore) -> Dict[str, int]:
    """Delete detections and bus images stored without GPS or user data."""
    logger.info("Starting cleanup of incomplete entries")
    deleted: Dict[str, int] = {}
    for collection in (*DETECTION_COLLECTIONS, BUS_IMAGES):
        try:
            deleted[collection] = store.delete_many(collection, INCOMPLETE_FILTER)
        except StorageError as exc:
            log_exception(logger, "Cleanup failed", extra={"collection": collection}, exc=exc)
            continue
        logger.info("Deleted %s incomplete %s entries", deleted[collection], collection)
    logger.info("Cleanup complete")
    return deleted


def verify_users_collection(store: DocumentStore, *, sample: int = 5) -> int:
    """Log how many users exist and a few samples. Returns the count."""
    count = store.count(USERS)
    logger.info("Found %s users in database", count)
    for user in store.find(USERS, limit=sample):
        logger.info("  - %s (%s) created=%s", user.get("email"), user.get("userId"), user.get("createdAt"))
    logger.info("Database connection status: %s", "connected" if store.ping() else "disconnected")
    return count
