"""Helpers for working with users."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mentorme.db.models.user import User


def get_or_create_user(db: Session, user_id: UUID, *, lock: bool = False) -> User:
    """Fetch an existing user or create a new row safely.

    With ``lock`` the user row is selected FOR UPDATE, which serializes
    capacity checks for the same user on backends that support row locks.
    """
    user = db.get(User, user_id, with_for_update=lock or None)
    if user:
        return user

    user = User(id=user_id)
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id, with_for_update=lock or None)
        if existing:
            return existing
        raise
