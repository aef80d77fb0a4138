"""Schemas for the template marketplace."""
from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel


class TemplatePayload(BaseModel):
    index: int
    title: str
    description: str
    tags: List[str]
    rating: float
    users: int


class UseTemplateRequest(BaseModel):
    user_id: UUID
