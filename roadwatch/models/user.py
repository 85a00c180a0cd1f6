"""
ORM model for mobile and web client users.

Users are identified by email; the generated ``userId`` is what the
mobile client attaches to every detection it uploads.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    user_id: Mapped[str] = mapped_column("userId", String(64), unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime, default=datetime.utcnow)
    last_login: Mapped[datetime] = mapped_column("lastLogin", DateTime, default=datetime.utcnow)
