"""
Identity verification for the web client endpoints.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException

from .config import auth_disabled
from .security import TokenError, decode_access_token


logger = logging.getLogger("auth")


@dataclass
class UserContext:
    user_id: Optional[str] = None
    email: Optional[str] = None
    anonymous: bool = False


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def verify_credential(token: str) -> Optional[UserContext]:
    """Return the identity carried by ``token``, or None when it is invalid."""
    try:
        claims = decode_access_token(token)
    except TokenError as exc:
        logger.debug("Token rejected: %s", exc)
        return None
    user_id = str(claims.get("user_id") or "").strip()
    email = str(claims.get("sub") or "").strip()
    if not user_id or not email:
        return None
    return UserContext(user_id=user_id, email=email)


def get_current_user(authorization: Optional[str] = Header(None)) -> UserContext:
    if auth_disabled():
        return UserContext(anonymous=True)
    token = _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    user = verify_credential(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user
