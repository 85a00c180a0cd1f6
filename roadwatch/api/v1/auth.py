"""
Login endpoint shared by the mobile and web clients.

Users sign in with an email address only. The first login creates the
account; every login returns the ``user_id`` the mobile client attaches to
its uploads and an access token for the web client.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...core.errors import StorageError, log_exception
from ...core.security import create_access_token
from ...schemas.detection import LoginIn
from ...services.users import is_valid_email, login_or_register
from ...storage import DocumentStore
from ..deps import get_store


router = APIRouter(tags=["auth"])

logger = logging.getLogger("auth")


@router.post("/login")
def login(payload: LoginIn, store: DocumentStore = Depends(get_store)) -> JSONResponse:
    email = (payload.email or "").strip()
    if not is_valid_email(email):
        logger.info("Login rejected: invalid email format")
        return JSONResponse(status_code=400, content={"error": "Valid email is required"})
    try:
        outcome = login_or_register(store, email)
    except StorageError as exc:
        log_exception(logger, "Login failed", extra={"email": email}, exc=exc)
        return JSONResponse(status_code=500, content={"error": "Failed to process login"})
    token = create_access_token(sub=outcome.email, user_id=outcome.user_id)
    return JSONResponse(
        status_code=201 if outcome.created else 200,
        content={
            "message": "User created" if outcome.created else "Login successful",
            "user_id": outcome.user_id,
            "access_token": token,
            "token_type": "bearer",
        },
    )
