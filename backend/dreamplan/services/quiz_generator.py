"""LLM-backed multiple-choice quiz generation for quiz-gated tasks."""
from __future__ import annotations

import logging
from typing import List

from pydantic import BaseModel, Field, ValidationError

from dreamplan.core.errors import UpstreamServiceError
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services import llm_gateway

logger = logging.getLogger(__name__)

MIN_QUESTIONS = 2
MAX_QUESTIONS = 5
OPTION_COUNT = 4


class QuizQuestion(BaseModel):
    """A single question with four options and the index of the right one."""

    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=OPTION_COUNT, max_length=OPTION_COUNT)
    correct_answer: int = Field(..., ge=0, le=OPTION_COUNT - 1)


QUIZ_TOOL = llm_gateway.function_tool(
    "generate_quiz",
    "Generate quiz questions for task verification",
    {
        "type": "object",
        "properties": {
            "questions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "question": {"type": "string"},
                        "options": {
                            "type": "array",
                            "items": {"type": "string"},
                            "minItems": OPTION_COUNT,
                            "maxItems": OPTION_COUNT,
                        },
                        "correct_answer": {"type": "number", "minimum": 0, "maximum": OPTION_COUNT - 1},
                    },
                    "required": ["question", "options", "correct_answer"],
                    "additionalProperties": False,
                },
                "minItems": MIN_QUESTIONS,
                "maxItems": MAX_QUESTIONS,
            }
        },
        "required": ["questions"],
        "additionalProperties": False,
    },
)


def generate_quiz(task_title: str) -> List[QuizQuestion]:
    """Ask the LLM for 2-5 questions about ``task_title``.

    The answer index is trusted as returned; only the shape is checked.
    """
    logger.info("Generating quiz for task: %s", task_title)
    messages = [
        {
            "role": "system",
            "content": (
                "You are a quiz generation expert. Create multiple-choice questions based on task titles "
                "to verify understanding."
            ),
        },
        {
            "role": "user",
            "content": (
                f'Generate {MIN_QUESTIONS}-{MAX_QUESTIONS} multiple-choice quiz questions for this task: "{task_title}". '
                "Each question should test understanding of the topic. Vary the number of questions based on "
                "task complexity."
            ),
        },
    ]

    with trace("quiz.generate", metadata={"task_title_length": len(task_title)}):
        arguments, _ = llm_gateway.create_tool_call(messages, QUIZ_TOOL)
        questions = parse_questions((arguments or {}).get("questions") or [])

    log_metric("quiz.generate.questions", len(questions))
    return questions


def parse_questions(raw_questions: list) -> List[QuizQuestion]:
    """Validate raw tool output, keeping at most five questions."""
    try:
        questions = [QuizQuestion.model_validate(item) for item in raw_questions[:MAX_QUESTIONS]]
    except ValidationError as exc:
        logger.error("Quiz payload failed validation: %s", exc.errors())
        raise UpstreamServiceError("LLM returned malformed quiz questions", service=llm_gateway.SERVICE_NAME) from exc

    if len(questions) < MIN_QUESTIONS:
        raise UpstreamServiceError(
            f"LLM returned {len(questions)} quiz questions, expected at least {MIN_QUESTIONS}",
            service=llm_gateway.SERVICE_NAME,
        )
    return questions
