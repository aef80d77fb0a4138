"""Remote generator functions: habits, quizzes and plain chat completion."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from dreamplan.api.schemas.functions import (
    ChatCompletionRequest,
    GenerateHabitsRequest,
    GenerateHabitsResponse,
    GenerateQuizRequest,
    GenerateQuizResponse,
)
from dreamplan.core.errors import DreamPlanError
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services import habit_generator, llm_gateway, quiz_generator
from dreamplan.services.habit_generator import TimelineConstraints

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["functions"])

HABITS_ERROR = {"error": "Unable to generate habits. Please try again later.", "code": "GENERATION_ERROR"}
QUIZ_ERROR_MESSAGE = "Unable to generate quiz"
CHAT_ERROR = {"error": "Unable to complete chat"}


@router.post("/generate-habits", response_model=GenerateHabitsResponse)
def generate_habits_endpoint(payload: GenerateHabitsRequest, http_request: Request):
    """Five habits plus related videos for a dream, or a generic error payload."""
    request_id = getattr(http_request.state, "request_id", None)
    timeline = TimelineConstraints(
        target_months=payload.target_months,
        target_date=payload.target_date,
        available_days=list(payload.available_days or []),
        daily_hours=payload.daily_hours,
    )

    with trace("functions.generate_habits", metadata={"route": "/functions/generate-habits"}, request_id=request_id):
        try:
            plan = habit_generator.generate_habits(payload.dream, timeline)
        except DreamPlanError as exc:
            logger.error(
                "[Generate Habits Error] %s",
                {"error": str(exc), "type": exc.__class__.__name__, "timestamp": _now_iso()},
            )
            log_metric("functions.generate_habits.success", 0)
            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=HABITS_ERROR)

    log_metric("functions.generate_habits.success", 1)
    return GenerateHabitsResponse(habits=plan.habits, videos=plan.videos)


@router.post("/generate-quiz", response_model=GenerateQuizResponse)
def generate_quiz_endpoint(payload: GenerateQuizRequest, http_request: Request):
    """Two to five multiple-choice questions for a task title."""
    request_id = getattr(http_request.state, "request_id", None)

    with trace("functions.generate_quiz", metadata={"route": "/functions/generate-quiz"}, request_id=request_id):
        try:
            questions = quiz_generator.generate_quiz(payload.task_title)
        except DreamPlanError as exc:
            logger.error("Error in generate-quiz function: %s", exc)
            log_metric("functions.generate_quiz.success", 0)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": QUIZ_ERROR_MESSAGE, "details": str(exc)},
            )

    log_metric("functions.generate_quiz.success", 1)
    return GenerateQuizResponse(questions=questions)


@router.post("/chat")
def chat_endpoint(payload: ChatCompletionRequest, http_request: Request):
    """Forward a full transcript to the LLM and return the completion."""
    request_id = getattr(http_request.state, "request_id", None)
    messages = [message.model_dump() for message in payload.messages]

    with trace("functions.chat", metadata={"turns": len(messages)}, request_id=request_id):
        try:
            return llm_gateway.create_chat_completion(messages)
        except DreamPlanError as exc:
            logger.error("Chat completion failed: %s", exc)
            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=CHAT_ERROR)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
