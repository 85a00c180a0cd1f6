"""
Ingestion endpoints used by the mobile client.

These keep the unversioned paths the Android app has always posted to.
Soft skips answer 200 with ``status: skipped`` so the client never retries
them; only storage failures answer 500.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Form
from fastapi.responses import JSONResponse

from ...core.config import bus_log_policy
from ...core.request_limits import enforce_json_body_limit, enforce_upload_limit
from ...services.event_ingest import (
    IngestResult,
    ingest_bus_image,
    ingest_log,
    ingest_tracking,
    ingest_uploaded_image,
)
from ...services.normalizer import EventNormalizer
from ...storage import DocumentStore
from ..deps import get_normalizer, get_store


router = APIRouter(tags=["ingest"])


def _respond(result: IngestResult) -> JSONResponse:
    return JSONResponse(status_code=result.http_status, content=result.body())


@router.post("/logs", dependencies=[Depends(enforce_json_body_limit)])
def post_log(
    payload: dict = Body(...),
    store: DocumentStore = Depends(get_store),
    normalizer: EventNormalizer = Depends(get_normalizer),
) -> JSONResponse:
    return _respond(ingest_log(store, normalizer, payload, bus_policy=bus_log_policy()))


@router.post("/tracking", dependencies=[Depends(enforce_json_body_limit)])
def post_tracking(
    payload: dict = Body(...),
    store: DocumentStore = Depends(get_store),
    normalizer: EventNormalizer = Depends(get_normalizer),
) -> JSONResponse:
    return _respond(ingest_tracking(store, normalizer, payload))


@router.post("/upload-image", dependencies=[Depends(enforce_upload_limit)])
def post_upload_image(
    data: Optional[str] = Form(None),
    store: DocumentStore = Depends(get_store),
    normalizer: EventNormalizer = Depends(get_normalizer),
) -> JSONResponse:
    return _respond(ingest_uploaded_image(store, normalizer, data))


@router.post("/bus-image", dependencies=[Depends(enforce_json_body_limit)])
def post_bus_image(
    payload: dict = Body(...),
    store: DocumentStore = Depends(get_store),
    normalizer: EventNormalizer = Depends(get_normalizer),
) -> JSONResponse:
    return _respond(ingest_bus_image(store, normalizer, payload))
