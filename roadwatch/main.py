"""
Entry point for the Roadwatch backend.

This module creates the FastAPI application, wires the document store and
the duplicate suppressor onto ``app.state`` and includes all routers. Run
with:

    uvicorn roadwatch.main:app --reload

"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI

from .api import api_router
from .core.config import auto_cleanup_incomplete, auto_create_db, get_app_env, settings
from .core.errors import log_exception
from .core.logging_config import setup_logging
from .services.cleanup import cleanup_incomplete_entries, verify_users_collection
from .services.dedup import DuplicateSuppressor
from .services.normalizer import EventNormalizer
from .storage import get_document_store


def build_normalizer() -> EventNormalizer:
    suppressor = DuplicateSuppressor(
        window_ms=settings.dedup_window_ms,
        ttl_ms=settings.dedup_ttl_ms,
        capacity=settings.dedup_capacity,
        sliding=settings.dedup_sliding_window,
    )
    return EventNormalizer(suppressor, bucket_precision=settings.dedup_bucket)


def create_app() -> FastAPI:
    app = FastAPI(title="Roadwatch Backend", version="0.1.0")
    app.include_router(api_router)
    app.state.document_store = get_document_store()
    app.state.event_normalizer = build_normalizer()
    app.state.duplicate_suppressor = app.state.event_normalizer.suppressor

    @app.on_event("startup")
    def _init_store() -> None:
        logger = logging.getLogger("startup")
        env = get_app_env()
        store = app.state.document_store
        if auto_create_db():
            try:
                store.ensure_schema()
            except Exception as exc:
                log_exception(logger, "Document store schema setup failed", extra={"backend": store.backend}, exc=exc)
                if env == "prod":
                    raise
        if auto_cleanup_incomplete():
            try:
                cleanup_incomplete_entries(store)
            except Exception as exc:
                log_exception(logger, "Startup cleanup failed", exc=exc)
        try:
            verify_users_collection(store)
        except Exception as exc:
            log_exception(logger, "Users collection check failed", exc=exc)
            if env == "prod":
                raise

    return app


app = create_app()


def run() -> None:
    import uvicorn

    setup_logging()
    uvicorn.run(
        "roadwatch.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
