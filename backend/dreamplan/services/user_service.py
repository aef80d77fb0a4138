"""Helpers for working with user profiles."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dreamplan.db.models.user import User

COACHING_MODES = ("motivational", "casual", "professional")
DEFAULT_COACHING_MODE = "motivational"
DEFAULT_DISPLAY_NAME = "Friend"


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Fetch an existing user or create a new row safely."""
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id, coaching_mode=DEFAULT_COACHING_MODE)
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise


def display_name(user: User | None) -> str:
    if user and user.full_name and user.full_name.strip():
        return user.full_name.strip()
    return DEFAULT_DISPLAY_NAME


def coaching_mode_of(user: User | None) -> str:
    mode = user.coaching_mode if user else None
    return mode if mode in COACHING_MODES else DEFAULT_COACHING_MODE


def set_coaching_mode(db: Session, user_id: UUID, mode: str) -> User:
    """Stage ``mode`` on the profile; the caller commits it with any related rows."""
    if mode not in COACHING_MODES:
        raise ValueError(f"Unknown coaching mode: {mode}")
    user = get_or_create_user(db, user_id)
    user.coaching_mode = mode
    db.add(user)
    return user
