"""
User lookup and registration by email.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.errors import StorageError
from ..storage import USERS, Document, DocumentStore
from .timestamps import format_canonical


logger = logging.getLogger("users")


@dataclass
class LoginOutcome:
    user_id: str
    email: str
    created: bool


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and "@" in email


def login_or_register(store: DocumentStore, email: str, *, now: Optional[datetime] = None) -> LoginOutcome:
    """Return the user for ``email``, creating one on first login."""
    now = now or datetime.utcnow()
    user: Optional[Document] = store.find_one(USERS, {"email": email})
    if user is not None:
        previous = user.get("lastLogin")
        store.update_one(USERS, {"email": email}, {"lastLogin": now})
        logger.info(
            "Existing user login user_id=%s email=%s created=%s last_login=%s -> %s",
            user["userId"],
            email,
            format_canonical(user["createdAt"]) if isinstance(user.get("createdAt"), datetime) else user.get("createdAt"),
            format_canonical(previous) if isinstance(previous, datetime) else previous,
            format_canonical(now),
        )
        return LoginOutcome(user_id=user["userId"], email=email, created=False)

    user_id = str(uuid.uuid4())
    try:
        store.insert(USERS, {"email": email, "userId": user_id, "createdAt": now, "lastLogin": now})
    except StorageError:
        # a concurrent first login for the same email may have won the unique index
        existing = store.find_one(USERS, {"email": email})
        if existing is None:
            raise
        logger.info("Concurrent registration resolved user_id=%s email=%s", existing["userId"], email)
        return LoginOutcome(user_id=existing["userId"], email=email, created=False)
    logger.info("New user created user_id=%s email=%s created=%s", user_id, email, format_canonical(now))
    return LoginOutcome(user_id=user_id, email=email, created=True)


def list_users(store: DocumentStore, *, limit: int = 10) -> list[dict]:
    return [
        {
            "userId": user.get("userId"),
            "email": user.get("email"),
            "createdAt": user.get("createdAt"),
            "lastLogin": user.get("lastLogin"),
        }
        for user in store.find(USERS, limit=limit)
    ]
