"""
FastAPI dependencies resolving per-app collaborators from ``app.state``.
"""

from __future__ import annotations

from fastapi import Request

from ..services.normalizer import EventNormalizer
from ..storage import DocumentStore


def get_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_normalizer(request: Request) -> EventNormalizer:
    return request.app.state.event_normalizer
