"""Schemas for notification operations."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ReminderRunRequest(BaseModel):
    hour: Optional[int] = Field(default=None, ge=0, le=23)


class ReminderRunResponse(BaseModel):
    hour: int
    users_due: int
    reminders_sent: int
    skipped: int
    request_id: str
