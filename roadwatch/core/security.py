"""
Access tokens for the web client.

Tokens are compact HS256 JWTs carrying the user's email (``sub``) and the
``user_id`` the mobile client stamps on its uploads.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any


class TokenError(ValueError):
    """Raised when a token is malformed, forged or expired."""


_HEADER = {"alg": "HS256", "typ": "JWT"}
DEV_FALLBACK_SECRET = "dev-jwt-secret-change-me"


def _jwt_secret() -> str:
    secret = (os.getenv("ROADWATCH_JWT_SECRET") or "").strip()
    if secret:
        return secret
    env = (os.getenv("ROADWATCH_ENV") or os.getenv("APP_ENV") or "dev").strip().lower()
    return "" if env == "prod" else DEV_FALLBACK_SECRET


def _ttl_seconds() -> int:
    try:
        minutes = int(os.getenv("ROADWATCH_JWT_EXP_MIN", "720"))
    except ValueError:
        minutes = 720
    return max(1, minutes) * 60


def _encode_segment(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode_segment(segment: str) -> bytes:
    try:
        return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (ValueError, TypeError) as exc:
        raise TokenError("Malformed token") from exc


def _signature(signing_input: str, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), signing_input.encode("utf-8"), hashlib.sha256).digest()


def create_access_token(*, sub: str, user_id: str) -> str:
    secret = _jwt_secret()
    if not secret:
        raise RuntimeError("ROADWATCH_JWT_SECRET is required in prod")
    issued = int(time.time())
    claims = {"sub": sub, "user_id": user_id, "iat": issued, "exp": issued + _ttl_seconds()}
    signing_input = f"{_encode_segment(_HEADER)}.{_encode_segment(claims)}"
    signature = base64.urlsafe_b64encode(_signature(signing_input, secret)).rstrip(b"=").decode("ascii")
    return f"{signing_input}.{signature}"


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify ``token`` and return its claims; raises ``TokenError``."""
    secret = _jwt_secret()
    if not secret:
        raise TokenError("JWT secret not configured")
    try:
        header_b64, claims_b64, signature_b64 = token.split(".")
    except ValueError as exc:
        raise TokenError("Malformed token") from exc
    expected = _signature(f"{header_b64}.{claims_b64}", secret)
    if not hmac.compare_digest(expected, _decode_segment(signature_b64)):
        raise TokenError("Invalid signature")
    try:
        claims = json.loads(_decode_segment(claims_b64))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TokenError("Malformed token") from exc
    if not isinstance(claims, dict):
        raise TokenError("Invalid payload")
    try:
        exp = int(claims.get("exp") or 0)
    except (TypeError, ValueError) as exc:
        raise TokenError("Invalid exp") from exc
    if exp <= int(time.time()):
        raise TokenError("Token expired")
    return claims
