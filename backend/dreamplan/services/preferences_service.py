"""Notification preference persistence."""
from __future__ import annotations

from typing import Iterable, List
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dreamplan.db.models.notification_preferences import (
    DEFAULT_AI_TONE,
    DEFAULT_NOTIFICATION_TYPES,
    DEFAULT_REMINDER_TIME,
    NotificationPreferences,
)
from dreamplan.services.user_service import get_or_create_user


def get_or_create_preferences(db: Session, user_id: UUID) -> NotificationPreferences:
    """Return stored preferences, inserting the defaults on first access."""
    prefs = db.get(NotificationPreferences, user_id)
    if prefs:
        return prefs

    get_or_create_user(db, user_id)
    prefs = NotificationPreferences(
        user_id=user_id,
        enabled=True,
        reminder_time=DEFAULT_REMINDER_TIME,
        ai_tone=DEFAULT_AI_TONE,
        notification_types=list(DEFAULT_NOTIFICATION_TYPES),
    )
    db.add(prefs)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = db.get(NotificationPreferences, user_id)
        if existing:
            return existing
        raise
    db.refresh(prefs)
    return prefs


def save_preferences(
    db: Session,
    user_id: UUID,
    *,
    enabled: bool,
    reminder_time: str,
    ai_tone: str,
    notification_types: Iterable[str],
) -> NotificationPreferences:
    """Upsert the full preference set for ``user_id``."""
    prefs = get_or_create_preferences(db, user_id)
    prefs.enabled = enabled
    prefs.reminder_time = reminder_time
    prefs.ai_tone = ai_tone
    prefs.notification_types = dedupe_types(notification_types)
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    return prefs


def dedupe_types(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen
