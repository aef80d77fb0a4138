"""Schemas for notification preferences."""
from __future__ import annotations

import re
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

AiTone = Literal["motivational", "funny", "professional"]
NotificationType = Literal["task_reminder", "daily_summary", "weekly_progress"]

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(:([0-5]\d))?$")


class NotificationPreferencesRequest(BaseModel):
    user_id: UUID
    enabled: bool = True
    reminder_time: str = "09:00:00"
    ai_tone: AiTone = "motivational"
    notification_types: List[NotificationType] = Field(default_factory=lambda: ["task_reminder", "daily_summary"])

    @field_validator("reminder_time")
    @classmethod
    def normalize_reminder_time(cls, value: str) -> str:
        match = _TIME_PATTERN.match(value.strip())
        if not match:
            raise ValueError("reminder_time must look like HH:MM or HH:MM:SS")
        hours, minutes, _, seconds = match.groups()
        return f"{hours}:{minutes}:{seconds or '00'}"


class NotificationPreferencesResponse(BaseModel):
    user_id: UUID
    enabled: bool
    reminder_time: str
    ai_tone: AiTone
    notification_types: List[NotificationType]
    updated_at: Optional[datetime]
    request_id: str
