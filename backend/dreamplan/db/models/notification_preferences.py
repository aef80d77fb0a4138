"""Notification preferences ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from dreamplan.db.base import Base
from dreamplan.db.types import JSONBCompat

DEFAULT_REMINDER_TIME = "09:00:00"
DEFAULT_AI_TONE = "motivational"
DEFAULT_NOTIFICATION_TYPES = ["task_reminder", "daily_summary"]


class NotificationPreferences(Base):
    __tablename__ = "notification_preferences"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    enabled = Column(Boolean, nullable=False, default=True, server_default=sa_text("true"))
    reminder_time = Column(String(length=8), nullable=False, default=DEFAULT_REMINDER_TIME)
    ai_tone = Column(String(length=20), nullable=False, default=DEFAULT_AI_TONE)
    notification_types = Column(JSONBCompat, nullable=False, default=lambda: list(DEFAULT_NOTIFICATION_TYPES))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
