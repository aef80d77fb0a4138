"""Sequential plan provisioning: plan row, habits, tasks, quizzes, resources."""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dreamplan.core.errors import DreamPlanError
from dreamplan.db.models.activity_log import ActivityLog
from dreamplan.db.models.plan import Plan
from dreamplan.db.models.resource import Resource
from dreamplan.db.models.task import TASK_TYPE_PROOF, TASK_TYPE_QUIZ, DailyTask
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import annotate, trace
from dreamplan.services import habit_generator as habit_service
from dreamplan.services import quiz_generator as quiz_service
from dreamplan.services.habit_generator import HabitPlan, TimelineConstraints
from dreamplan.services.quiz_generator import QuizQuestion
from dreamplan.services.user_service import get_or_create_user
from dreamplan.services.video_search import youtube_watch_url

logger = logging.getLogger(__name__)

QUIZ_TASKS_PER_PLAN = 2
RESOURCE_TYPE_YOUTUBE = "youtube"

HabitGenerator = Callable[[str, Optional[TimelineConstraints]], HabitPlan]
QuizGenerator = Callable[[str], List[QuizQuestion]]


class PlanProvisioningError(DreamPlanError):
    """A fatal step failed; ``stage`` is one of ``plan``, ``habits`` or ``tasks``.

    Rows committed by earlier stages are left in place.
    """

    def __init__(self, message: str, *, stage: str, plan_id: UUID | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.plan_id = plan_id


@dataclass
class ProvisioningResult:
    plan: Plan
    tasks: List[DailyTask] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    quiz_failures: int = 0


def select_quiz_indices(count: int, rng: random.Random) -> Set[int]:
    """Pick ``min(2, count)`` distinct task positions uniformly at random."""
    indices = list(range(count))
    rng.shuffle(indices)
    return set(indices[:QUIZ_TASKS_PER_PLAN])


def provision_plan(
    db: Session,
    *,
    user_id: UUID,
    title: str,
    description: Optional[str] = None,
    timeline: Optional[TimelineConstraints] = None,
    plan_metadata: Optional[Dict[str, Any]] = None,
    habit_generator: Optional[HabitGenerator] = None,
    quiz_generator: Optional[QuizGenerator] = None,
    rng: Optional[random.Random] = None,
    request_id: Optional[str] = None,
) -> ProvisioningResult:
    """
    Create a plan and everything hanging off it, one committed step at a time.

    Plan, habits and task insertion are fatal on failure. Quiz generation is
    isolated per task: a failure is logged and the task keeps ``task_type``
    "quiz" without questions. Resource insertion errors propagate.
    """
    habit_generator = habit_generator or habit_service.generate_habits
    quiz_generator = quiz_generator or quiz_service.generate_quiz
    rng = rng or random.Random()

    base_metadata: Dict[str, Any] = {
        "user_id": str(user_id),
        "title_length": len(title),
        "has_timeline": bool(timeline and timeline.is_complete()),
        "request_id": request_id,
    }
    start_time = perf_counter()
    success = False
    result: Optional[ProvisioningResult] = None

    try:
        with trace("plan.provision", metadata=base_metadata, user_id=str(user_id), request_id=request_id) as span:
            plan = _insert_plan(db, user_id, title, description, plan_metadata)
            result = ProvisioningResult(plan=plan)

            try:
                habit_plan = habit_generator(title, timeline)
            except DreamPlanError as exc:
                logger.error("Habit generation failed for plan %s: %s", plan.id, exc)
                raise PlanProvisioningError("Habit generation failed", stage="habits", plan_id=plan.id) from exc

            quiz_indices = select_quiz_indices(len(habit_plan.habits), rng)
            result.tasks = _insert_tasks(db, plan, habit_plan.habits, quiz_indices)
            result.quiz_failures = _attach_quizzes(db, result.tasks, quiz_generator)
            result.resources = _insert_resources(db, plan, habit_plan.videos, result, request_id)
            success = True

            annotate(
                span,
                {
                    **base_metadata,
                    "plan_id": str(plan.id),
                    "tasks_created": len(result.tasks),
                    "quiz_failures": result.quiz_failures,
                    "resources_created": len(result.resources),
                },
            )
    finally:
        metric_metadata = {"user_id": str(user_id)}
        log_metric("plan.provision.success", 1 if success else 0, metadata=metric_metadata)
        log_metric("plan.provision.latency_ms", (perf_counter() - start_time) * 1000, metadata=metric_metadata)
        if result is not None:
            log_metric("plan.provision.quiz_failures", result.quiz_failures, metadata=metric_metadata)

    return result


def _insert_plan(
    db: Session,
    user_id: UUID,
    title: str,
    description: Optional[str],
    plan_metadata: Optional[Dict[str, Any]],
) -> Plan:
    try:
        get_or_create_user(db, user_id)
        plan = Plan(user_id=user_id, title=title, description=description, metadata_json=plan_metadata or None)
        db.add(plan)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PlanProvisioningError("Failed to save plan", stage="plan") from exc
    db.refresh(plan)
    return plan


def _insert_tasks(db: Session, plan: Plan, habits: List[str], quiz_indices: Set[int]) -> List[DailyTask]:
    tasks = [
        DailyTask(
            plan_id=plan.id,
            user_id=plan.user_id,
            title=habit,
            completed=False,
            task_type=TASK_TYPE_QUIZ if index in quiz_indices else TASK_TYPE_PROOF,
        )
        for index, habit in enumerate(habits)
    ]
    if not tasks:
        return tasks

    db.add_all(tasks)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PlanProvisioningError("Failed to save tasks", stage="tasks", plan_id=plan.id) from exc
    for task in tasks:
        db.refresh(task)
    return tasks


def _attach_quizzes(db: Session, tasks: List[DailyTask], quiz_generator: QuizGenerator) -> int:
    """Fetch quizzes one task at a time; returns how many tasks were left without one."""
    failures = 0
    for task in tasks:
        if task.task_type != TASK_TYPE_QUIZ:
            continue
        title = task.title
        try:
            questions = quiz_generator(title)
            task.quiz_questions = [question.model_dump() for question in questions]
            db.commit()
        except Exception:
            db.rollback()
            failures += 1
            logger.warning("Failed to generate quiz for task: %s", title, exc_info=True)
    return failures


def _insert_resources(
    db: Session,
    plan: Plan,
    videos: List[Dict[str, str]],
    result: ProvisioningResult,
    request_id: Optional[str],
) -> List[Resource]:
    resources = [
        Resource(
            plan_id=plan.id,
            title=video["title"],
            url=youtube_watch_url(video["id"]),
            thumbnail=video.get("thumbnail"),
            resource_type=RESOURCE_TYPE_YOUTUBE,
        )
        for video in videos or []
    ]
    db.add_all(resources)
    db.add(
        ActivityLog(
            user_id=plan.user_id,
            action_type="plan_provisioned",
            action_payload={
                "plan_id": str(plan.id),
                "task_ids": [str(task.id) for task in result.tasks],
                "quiz_failures": result.quiz_failures,
                "resources": len(resources),
                "request_id": request_id,
            },
            reason="Plan provisioned from goal",
        )
    )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    for resource in resources:
        db.refresh(resource)
    return resources
