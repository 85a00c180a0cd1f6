"""
Time-windowed duplicate suppression for ingested events.

The mobile client re-submits the same physical detection several times in
quick succession. A fingerprint table remembers when each coarse event key
was last accepted and reports repeats inside the window. Stale entries are
swept only as a side effect of inserts once the table outgrows its capacity,
so no background task is needed.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from .timestamps import timestamp_bucket


DEFAULT_WINDOW_MS = 10_000
DEFAULT_TTL_MS = 30_000
DEFAULT_CAPACITY = 100


def event_key(
    session_id: str,
    object_type: str,
    device_id: str,
    timestamp: str,
    *,
    precision: str = "hour",
) -> str:
    return f"{session_id}-{object_type}-{device_id}-{timestamp_bucket(timestamp, precision)}"


def bus_image_key(session_id: str, device_id: str, timestamp: str, *, precision: str = "hour") -> str:
    return f"busimg-{session_id}-{device_id}-{timestamp_bucket(timestamp, precision)}"


class DuplicateSuppressor:
    """
    Fingerprint -> last-seen table with a fixed (or sliding) window.

    With ``sliding=False`` the first accepted arrival anchors the window and
    repeats inside it do not extend it. With ``sliding=True`` every observed
    repeat refreshes the timestamp, so a steady stream stays suppressed.
    """

    def __init__(
        self,
        *,
        window_ms: int = DEFAULT_WINDOW_MS,
        ttl_ms: int = DEFAULT_TTL_MS,
        capacity: int = DEFAULT_CAPACITY,
        sliding: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_ms = window_ms
        self.ttl_ms = ttl_ms
        self.capacity = capacity
        self.sliding = sliding
        self._clock = clock
        self._lock = threading.Lock()
        self._seen: dict[str, int] = {}

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def is_duplicate(self, fingerprint: str) -> bool:
        now = self._now_ms()
        with self._lock:
            last = self._seen.get(fingerprint)
            if last is not None and (now - last) < self.window_ms:
                if self.sliding:
                    self._seen[fingerprint] = now
                return True
            self._record(fingerprint, now)
            return False

    def mark_seen(self, fingerprint: str) -> None:
        now = self._now_ms()
        with self._lock:
            self._record(fingerprint, now)

    def forget(self, fingerprint: str) -> None:
        with self._lock:
            self._seen.pop(fingerprint, None)

    def _record(self, fingerprint: str, now: int) -> None:
        self._seen[fingerprint] = now
        if len(self._seen) > self.capacity:
            stale = [key for key, seen_at in self._seen.items() if (now - seen_at) >= self.ttl_ms]
            for key in stale:
                del self._seen[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._seen
