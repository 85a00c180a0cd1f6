"""
Liveness and database check endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse

from ...core.errors import StorageError, log_exception
from ...services.users import list_users
from ...storage import USERS, DocumentStore
from ..deps import get_store


router = APIRouter(tags=["health"])

logger = logging.getLogger("health")


@router.get("/", response_class=PlainTextResponse)
def root(store: DocumentStore = Depends(get_store)) -> str:
    return f"Server is running and is connected to the {store.backend} document store!"


@router.get("/test-db")
def test_db(store: DocumentStore = Depends(get_store)) -> JSONResponse:
    try:
        connected = store.ping()
        return JSONResponse(
            content=jsonable_encoder(
                {
                    "status": "success",
                    "dbConnection": "connected" if connected else "disconnected",
                    "userCount": store.count(USERS),
                    "users": list_users(store, limit=10),
                }
            )
        )
    except StorageError as exc:
        log_exception(logger, "Database test error", exc=exc)
        return JSONResponse(status_code=500, content={"status": "error", "message": str(exc)})
