"""
SQLAlchemy models backing the SQL document store.

Each persisted collection maps to one table. Column names keep the
camelCase document keys so records read back identically from either
storage backend.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


from .detection import BusLog, VehicleLog, OtherLog, BusImage  # noqa: E402
from .user import User  # noqa: E402

__all__ = [
    "Base",
    "BusLog",
    "VehicleLog",
    "OtherLog",
    "BusImage",
    "User",
]
