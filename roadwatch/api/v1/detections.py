"""
Read endpoints for stored detections and bus images.

Callers see their own records plus anything marked public. When
authentication is disabled every record is visible.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ...core.auth import UserContext, get_current_user
from ...core.pagination import PageParams, page_params
from ...services.classifier import Category, category_for_collection
from ...storage import BUS_IMAGES, DETECTION_COLLECTIONS, DocumentStore, Filter
from ..deps import get_store


router = APIRouter(prefix="/api/v1", tags=["detections"])

_NEWEST_FIRST = [("timestamp", -1)]


def visibility_filter(user: UserContext) -> Filter:
    if user.anonymous or not user.user_id:
        return {}
    return {"$or": [{"userId": user.user_id}, {"isPublic": True}]}


def _resolve_collection(category: str) -> str:
    if category in DETECTION_COLLECTIONS:
        return category
    for member in Category:
        if member.value.lower() == category.lower():
            return member.collection
    raise HTTPException(status_code=404, detail="Unknown detection category")


def _combine(base: Filter, session_id: Optional[str]) -> Filter:
    if not session_id:
        return base
    combined = dict(base)
    combined["sessionId"] = session_id
    return combined


@router.get("/detections/summary")
def detections_summary(
    user: UserContext = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> dict:
    visible = visibility_filter(user)
    counts = {name: store.count(name, visible) for name in DETECTION_COLLECTIONS}
    return {
        "counts": counts,
        "total": sum(counts.values()),
        "busImages": store.count(BUS_IMAGES, visible),
    }


@router.get("/detections/{category}")
def list_detections(
    category: str,
    response: Response,
    session_id: Optional[str] = Query(None),
    paging: PageParams = Depends(page_params),
    user: UserContext = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> dict:
    collection = _resolve_collection(category)
    query = _combine(visibility_filter(user), session_id)
    total = store.count(collection, query)
    items = store.find(collection, query, sort=_NEWEST_FIRST, skip=paging.skip, limit=paging.page_size)
    paging.apply_headers(response, total)
    return {
        "category": category_for_collection(collection).value,
        "collection": collection,
        "items": items,
        "total": total,
        "page": paging.page,
        "page_size": paging.page_size,
    }


@router.get("/bus-images")
def list_bus_images(
    response: Response,
    session_id: Optional[str] = Query(None),
    paging: PageParams = Depends(page_params),
    user: UserContext = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> dict:
    query = _combine(visibility_filter(user), session_id)
    total = store.count(BUS_IMAGES, query)
    rows = store.find(BUS_IMAGES, query, sort=_NEWEST_FIRST, skip=paging.skip, limit=paging.page_size)
    # image payloads are large; list views only carry metadata
    items = [{k: v for k, v in row.items() if k != "imageData"} for row in rows]
    paging.apply_headers(response, total)
    return {"items": items, "total": total, "page": paging.page, "page_size": paging.page_size}
