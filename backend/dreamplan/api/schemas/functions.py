"""Request and response contracts for the remote generator functions."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from dreamplan.services.quiz_generator import QuizQuestion


class GenerateHabitsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dream: str = Field(..., min_length=1, max_length=500)
    target_months: Optional[int] = Field(default=None, alias="targetMonths", ge=1, le=120)
    target_date: Optional[str] = Field(default=None, alias="targetDate")
    available_days: Optional[List[str]] = Field(default=None, alias="availableDays")
    daily_hours: Optional[float] = Field(default=None, alias="dailyHours", gt=0, le=24)


class VideoPayload(BaseModel):
    id: str
    title: str
    thumbnail: str
    channelTitle: str


class GenerateHabitsResponse(BaseModel):
    habits: List[str]
    videos: List[VideoPayload]


class GenerateQuizRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_title: str = Field(..., alias="taskTitle", min_length=1, max_length=500)


class GenerateQuizResponse(BaseModel):
    questions: List[QuizQuestion]


class ChatCompletionMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatCompletionRequest(BaseModel):
    messages: List[ChatCompletionMessage] = Field(..., min_length=1)
