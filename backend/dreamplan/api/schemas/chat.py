"""Schemas for coaching chat sessions."""
from __future__ import annotations

from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

CoachingMode = Literal["motivational", "casual", "professional"]


class ChatMessagePayload(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatSessionCreateRequest(BaseModel):
    user_id: UUID


class ChatSessionResponse(BaseModel):
    session_id: UUID
    user_id: UUID
    mode: CoachingMode
    messages: List[ChatMessagePayload]


class ChatMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


class ChatReplyResponse(BaseModel):
    session_id: UUID
    reply: ChatMessagePayload
    messages: List[ChatMessagePayload]


class CoachingModeRequest(BaseModel):
    user_id: UUID
    mode: CoachingMode
    session_id: Optional[UUID] = None


class CoachingModeResponse(BaseModel):
    mode: CoachingMode
    persisted: bool
    message: str
