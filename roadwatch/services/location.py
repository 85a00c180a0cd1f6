"""
Location formatting for ingested events.
"""

from __future__ import annotations

from typing import Any, Optional


DEFAULT_LOCATION = "0,0"
_NULL_PAIR = "null,null"


def _format_coordinate(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_location(raw: Optional[str], x: Any = None, y: Any = None) -> str:
    """
    Return a canonical ``"x,y"`` location.

    An explicit location string wins unless it is the ``"null,null"`` sentinel
    or carries ``undefined`` from a client that stringified missing values.
    Otherwise the coordinate pair is used when both halves are present, and
    ``"0,0"`` when nothing usable was sent.
    """
    if raw is not None and not isinstance(raw, str):
        raw = str(raw)
    if raw and raw != _NULL_PAIR and "undefined" not in raw:
        return raw
    if x is not None and y is not None:
        return f"{_format_coordinate(x)},{_format_coordinate(y)}"
    return DEFAULT_LOCATION
