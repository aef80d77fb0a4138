"""Schemas for daily task listing, completion and quizzes."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class TaskSummary(BaseModel):
    id: UUID
    plan_id: UUID
    title: str
    task_type: Literal["proof", "quiz"]
    completed: bool
    completed_at: Optional[datetime]
    has_quiz: bool
    proof_note: Optional[str]
    created_at: datetime
    updated_at: datetime


class TaskUpdateRequest(BaseModel):
    user_id: UUID
    completed: bool
    proof_note: Optional[str] = Field(default=None, max_length=500)


class TaskUpdateResponse(BaseModel):
    id: UUID
    completed: bool
    completed_at: Optional[datetime]
    request_id: str


class QuizQuestionView(BaseModel):
    question: str
    options: List[str]


class TaskQuizResponse(BaseModel):
    task_id: UUID
    title: str
    questions: List[QuizQuestionView]


class QuizSubmitRequest(BaseModel):
    user_id: UUID
    answers: List[int] = Field(..., min_length=1)


class QuizSubmitResponse(BaseModel):
    task_id: UUID
    results: List[bool]
    correct: int
    total: int
    passed: bool
    completed: bool
    request_id: str
