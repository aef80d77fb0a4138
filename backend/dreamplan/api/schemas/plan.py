"""Schemas for plan intake and retrieval."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class PlanCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = Field(default=None, max_length=1000)
    target_months: Optional[int] = Field(default=None, ge=1, le=120)
    target_date: Optional[date] = None
    available_days: Optional[List[str]] = None
    daily_hours: Optional[float] = Field(default=None, gt=0, le=24)

    @field_validator("title")
    @classmethod
    def trim_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be blank")
        return cleaned


class TaskPayload(BaseModel):
    id: UUID
    plan_id: UUID
    title: str
    completed: bool
    task_type: Literal["proof", "quiz"]
    has_quiz: bool


class ResourcePayload(BaseModel):
    id: UUID
    title: str
    url: str
    thumbnail: Optional[str]
    resource_type: str


class PlanSummary(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    description: Optional[str]
    created_at: datetime


class PlanResponse(PlanSummary):
    metadata: Dict[str, Any] = Field(default_factory=dict)
    tasks: List[TaskPayload]
    resources: List[ResourcePayload]
    quiz_failures: int = 0
    request_id: str
