"""LLM-backed daily habit generation plus supporting video lookup."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from dreamplan.core.config import settings
from dreamplan.core.errors import ConfigurationError, UpstreamServiceError
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services import llm_gateway, video_search

logger = logging.getLogger(__name__)

HABIT_COUNT = 5
VIDEO_COUNT = 5

HABIT_PLAN_TOOL = llm_gateway.function_tool(
    "generate_habit_plan",
    "Generate a structured, time-based habit plan",
    {
        "type": "object",
        "properties": {
            "habits": {
                "type": "array",
                "items": {
                    "type": "string",
                    "description": "Habit formatted as 'emoji description (time)'",
                },
                "minItems": HABIT_COUNT,
                "maxItems": HABIT_COUNT,
            }
        },
        "required": ["habits"],
        "additionalProperties": False,
    },
)


@dataclass
class TimelineConstraints:
    """Optional scheduling hints collected at plan intake."""

    target_months: Optional[int] = None
    target_date: Optional[str] = None
    available_days: List[str] = field(default_factory=list)
    daily_hours: Optional[float] = None

    def is_complete(self) -> bool:
        # Partial constraints are ignored rather than half-applied.
        return bool(self.target_months and self.target_date and self.available_days and self.daily_hours)


@dataclass
class HabitPlan:
    habits: List[str]
    videos: List[Dict[str, str]]


def generate_habits(
    dream: str,
    timeline: Optional[TimelineConstraints] = None,
    *,
    today: Optional[date] = None,
) -> HabitPlan:
    """Return exactly five habits for ``dream`` and up to five related videos.

    Any failure raises; callers never receive a partial plan.
    """
    _require_secrets()
    timeline = timeline or TimelineConstraints()
    metadata: Dict[str, Any] = {
        "dream_length": len(dream),
        "has_timeline": timeline.is_complete(),
    }

    with trace("habits.generate", metadata=metadata):
        habits = _generate_habit_strings(dream, timeline, today or date.today())
        videos = video_search.search_videos(dream, max_results=VIDEO_COUNT)

    log_metric("habits.generate.videos", len(videos))
    return HabitPlan(habits=habits, videos=videos)


def _require_secrets() -> None:
    if not settings.llm_api_key:
        raise ConfigurationError("LLM_API_KEY is not configured")
    if not settings.youtube_api_key:
        raise ConfigurationError("YOUTUBE_API_KEY is not configured")


def _generate_habit_strings(dream: str, timeline: TimelineConstraints, today: date) -> List[str]:
    messages = build_habit_messages(dream, timeline, today)
    arguments, content = llm_gateway.create_tool_call(messages, HABIT_PLAN_TOOL)

    if arguments is not None:
        raw_habits = arguments.get("habits") or []
        fallback_used = False
    else:
        logger.warning("Habit tool call missing; falling back to line splitting")
        raw_habits = content.split("\n")
        fallback_used = True

    habits = normalize_habits(raw_habits)
    log_metric("habits.generate.fallback_used", 1 if fallback_used else 0)
    if len(habits) < HABIT_COUNT:
        logger.error("LLM returned %s usable habits, expected %s", len(habits), HABIT_COUNT)
        raise UpstreamServiceError("LLM returned too few habits", service=llm_gateway.SERVICE_NAME)
    return habits


def normalize_habits(raw_habits: List[Any]) -> List[str]:
    """Keep non-blank string entries, trimmed, capped at five."""
    cleaned = [item.strip() for item in raw_habits if isinstance(item, str) and item.strip()]
    return cleaned[:HABIT_COUNT]


def build_habit_messages(dream: str, timeline: TimelineConstraints, today: date) -> List[Dict[str, str]]:
    timeline_context = ""
    schedule_hint = ""
    if timeline.is_complete():
        days = ", ".join(timeline.available_days)
        timeline_context = (
            f"The user wants to achieve this goal in {timeline.target_months} months "
            f"(target date: {timeline.target_date}). They can dedicate {timeline.daily_hours} hours per day, "
            f"working on {days}. Create a time-optimized plan that fits their schedule and timeline."
        )
        schedule_hint = (
            f"I have {timeline.daily_hours} hours daily on {days} to work toward this over "
            f"{timeline.target_months} months."
        )

    system_prompt = (
        "You are an expert habit coach and time management specialist. Generate adaptive, time-based daily "
        "habits that help users achieve their goals within their available time and schedule. "
        f"{timeline_context}"
    ).strip()
    user_prompt = (
        f"My dream is: {dream}. {schedule_hint} "
        f"Generate {HABIT_COUNT} unique and varied daily tasks with emojis that fit my schedule. "
        'Format each as: "emoji description (estimated time)". Make them different each day, progressive '
        "and achievable. Vary the tasks to keep them fresh and engaging. "
        f"Today's date: {today.isoformat()}"
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": " ".join(user_prompt.split())},
    ]
