"""
Timestamp normalization for ingested events.

Clients have sent epoch milliseconds, ISO-8601 strings, already formatted
values and free-form dates over the years. Everything is coerced to the
canonical ``YYYY-MM-DD HH:MM:SS`` form (UTC, no zone suffix). Parsing never
raises: unusable input falls back to the current time and the reason is
logged.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Optional, Union


logger = logging.getLogger("timestamps")

CANONICAL_FORMAT = "%Y-%m-%d %H:%M:%S"

_CANONICAL_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")
_NUMERIC_RE = re.compile(r"^[+-]?\d+(\.\d+)?$")

_FALLBACK_LAYOUTS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
    "%d %b %Y %H:%M:%S",
    "%b %d %Y %H:%M:%S",
    "%a %b %d %Y %H:%M:%S",
)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class Parsed:
    value: str


@dataclass(frozen=True)
class Defaulted:
    value: str
    reason: str


ParseResult = Union[Parsed, Defaulted]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_canonical(value: datetime) -> str:
    """Render ``value`` at second precision in UTC without a zone suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    # strftime("%Y") does not zero-pad years below 1000 on every libc
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def _is_real_point(text: str) -> bool:
    try:
        datetime.strptime(text, CANONICAL_FORMAT)
    except ValueError:
        return False
    return True


def _from_epoch_millis(millis: float) -> datetime:
    return datetime.fromtimestamp(int(millis) / 1000.0, tz=timezone.utc)


def _parse_generic(text: str) -> Optional[datetime]:
    candidate = text.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        pass
    for layout in _FALLBACK_LAYOUTS:
        try:
            return datetime.strptime(text.strip(), layout)
        except ValueError:
            continue
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def parse_timestamp(raw: Any, *, now: Optional[Clock] = None) -> ParseResult:
    """Normalize ``raw`` and report whether the current time was substituted."""
    clock = now or utc_now

    def _default(reason: str) -> Defaulted:
        return Defaulted(format_canonical(clock()), reason)

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return _default("missing")

    if isinstance(raw, datetime):
        return Parsed(format_canonical(raw))
    if isinstance(raw, date):
        return Parsed(format_canonical(datetime(raw.year, raw.month, raw.day)))

    if isinstance(raw, bool):
        return _default(f"unsupported type {type(raw).__name__}")

    if isinstance(raw, (int, float)) or (isinstance(raw, str) and _NUMERIC_RE.match(raw.strip())):
        try:
            text = str(raw).strip()
            millis = int(text) if text.lstrip("+-").isdigit() else float(text)
            return Parsed(format_canonical(_from_epoch_millis(millis)))
        except (OverflowError, OSError, ValueError) as exc:
            return _default(f"epoch millis out of range: {exc}")

    if not isinstance(raw, str):
        return _default(f"unsupported type {type(raw).__name__}")

    text = raw.strip()
    if "T" in text:
        truncated = text[:19].replace("T", " ")
        if _CANONICAL_RE.match(truncated) and _is_real_point(truncated):
            return Parsed(truncated)
    elif _CANONICAL_RE.match(text) and _is_real_point(text):
        return Parsed(text)

    parsed = _parse_generic(text)
    if parsed is None:
        return _default(f"unparseable timestamp {text!r}")
    return Parsed(format_canonical(parsed))


def normalize_timestamp(raw: Any, *, now: Optional[Clock] = None) -> str:
    result = parse_timestamp(raw, now=now)
    if isinstance(result, Defaulted) and result.reason != "missing":
        logger.warning("Could not format timestamp (%s), using current time instead", result.reason)
    return result.value


def timestamp_bucket(timestamp: str, precision: str = "hour") -> str:
    """Truncate a canonical timestamp to ``YYYY-MM-DD HH`` or ``YYYY-MM-DD HH:MM``."""
    if precision == "minute":
        return timestamp[:16]
    return timestamp[:13]
