"""Request size limits. Bus images arrive base64-encoded inside JSON bodies."""

from __future__ import annotations

import os

from fastapi import HTTPException, Request


DEFAULT_MAX_JSON_BODY_BYTES = 50 * 1024 * 1024
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _limit(name: str, default: int) -> int:
    try:
        return max(int(os.getenv(name, str(default))), 1024)
    except ValueError:
        return default


def _declared_length(request: Request) -> int | None:
    try:
        return int(request.headers["content-length"])
    except (KeyError, ValueError):
        return None


def _too_large() -> HTTPException:
    return HTTPException(status_code=413, detail="Payload too large")


async def enforce_json_body_limit(request: Request) -> None:
    max_bytes = _limit("MAX_JSON_BODY_BYTES", DEFAULT_MAX_JSON_BODY_BYTES)
    declared = _declared_length(request)
    if declared is None:
        # chunked bodies: measure what actually arrived
        if len(await request.body()) > max_bytes:
            raise _too_large()
    elif declared > max_bytes:
        raise _too_large()


def enforce_upload_limit(request: Request) -> None:
    declared = _declared_length(request)
    if declared is not None and declared > _limit("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES):
        raise _too_large()
