from __future__ import annotations

import uuid
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from db import db_session
from errors import NotAuthenticated
from models import User

# Returns the acting student's id, or None when nobody is signed in.
IdentityResolver = Callable[[], Optional[str]]


def get_user_by_id(db: Session, user_id: str | uuid.UUID) -> Optional[User]:
    try:
        key = uuid.UUID(str(user_id))
    except ValueError:
        return None
    return db.get(User, key)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(User.email == email))


def static_identity(user_id: Optional[str]) -> IdentityResolver:
    """Resolver for callers that already know who is acting (scripts, tests)."""
    return lambda: user_id


class DatabaseIdentityResolver:
    """Resolves a session's user id only if the user row still exists."""

    def __init__(self, user_id: Optional[str], session_factory: Callable[..., Any] = db_session) -> None:
        self.user_id = user_id
        self.session_factory = session_factory

    def __call__(self) -> Optional[str]:
        if not self.user_id:
            return None
        with self.session_factory() as db:
            user = get_user_by_id(db, self.user_id)
            return str(user.id) if user else None


def resolve_student_id(resolver: Optional[IdentityResolver]) -> str:
    user_id = resolver() if resolver else None
    if not user_id:
        raise NotAuthenticated()
    return str(user_id)
