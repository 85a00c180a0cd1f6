"""
Per-process token-bucket rate limiting.

Mobile clients post bursts of detections while a session is running, so
ingestion and read endpoints draw from separate budgets. Buckets are keyed
by the caller (bearer token hash, else client address) and route group.
"""

from __future__ import annotations

import hashlib
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import Header, HTTPException, Request

from .config import get_app_env


@dataclass(frozen=True)
class RateBudget:
    rps: float
    burst: int


# group -> (env prefix, default rps, default burst)
_BUDGET_DEFAULTS: Dict[str, Tuple[str, float, int]] = {
    "ingest": ("RATE_LIMIT_INGEST", 20.0, 60),
    "read": ("RATE_LIMIT", 5.0, 20),
}


def rate_limit_enabled() -> bool:
    raw = (os.getenv("RATE_LIMIT_ENABLED") or "").strip().lower()
    if raw in {"1", "true", "yes"}:
        return True
    if raw in {"0", "false", "no"}:
        return False
    return get_app_env() == "prod"


def budget_for(group: str) -> RateBudget:
    prefix, rps_default, burst_default = _BUDGET_DEFAULTS[group]
    try:
        rps = float(os.getenv(f"{prefix}_RPS", str(rps_default)))
    except ValueError:
        rps = rps_default
    try:
        burst = int(os.getenv(f"{prefix}_BURST", str(burst_default)))
    except ValueError:
        burst = burst_default
    return RateBudget(rps=max(rps, 0.1), burst=max(burst, 1))


def caller_identity(request: Request, authorization: Optional[str]) -> str:
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
    return request.client.host if request.client else "unknown"


class TokenBucketLimiter:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (tokens, last refill)
        self._buckets: Dict[str, Tuple[float, float]] = {}

    def allow(self, key: str, budget: RateBudget) -> Tuple[bool, float]:
        """Take one token for ``key``; returns (allowed, seconds until next token)."""
        now = self._clock()
        with self._lock:
            tokens, last = self._buckets.get(key, (float(budget.burst), now))
            tokens = min(float(budget.burst), tokens + max(0.0, now - last) * budget.rps)
            if tokens >= 1.0:
                self._buckets[key] = (tokens - 1.0, now)
                return True, 0.0
            self._buckets[key] = (tokens, now)
            return False, (1.0 - tokens) / budget.rps


_limiter = TokenBucketLimiter()


def rate_limiter(group: str):
    """Build a FastAPI dependency enforcing the ``group`` budget."""

    def _dependency(request: Request, authorization: Optional[str] = Header(None)) -> None:
        if not rate_limit_enabled():
            return
        key = f"{group}:{caller_identity(request, authorization)}:{request.url.path}"
        allowed, retry_after = _limiter.allow(key, budget_for(group))
        if not allowed:
            raise HTTPException(
                status_code=429,
                detail="Too Many Requests",
                headers={"Retry-After": str(max(1, int(retry_after)))},
            )

    return _dependency


ingest_rate_limit = rate_limiter("ingest")
read_rate_limit = rate_limiter("read")
