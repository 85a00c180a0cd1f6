"""
Error types shared by the storage layer and the ingestion handlers.
"""

from __future__ import annotations

import logging


class StorageError(Exception):
    """Raised when the document store fails to read or persist a record."""

    def __init__(self, message: str, *, collection: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection


def _context(extra: dict | None, exc: Exception | None) -> str:
    fields = dict(extra or {})
    if isinstance(exc, StorageError) and exc.collection:
        fields.setdefault("collection", exc.collection)
    parts = [f"{key}={value}" for key, value in fields.items() if value is not None]
    return " " + " ".join(parts) if parts else ""


def log_exception(logger: logging.Logger, msg: str, *, extra: dict | None = None, exc: Exception | None = None) -> None:
    """Log ``msg`` at ERROR with key=value context and the traceback.

    Without ``exc`` the exception currently being handled is used.
    """
    context = _context(extra, exc)
    if exc is None:
        logger.exception("%s%s", msg, context)
    else:
        logger.error("%s%s: %s", msg, context, exc, exc_info=exc)
