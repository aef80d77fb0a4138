"""Daily task API routes."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import asc
from sqlalchemy.orm import Session

from dreamplan.api.schemas.task import (
    QuizQuestionView,
    QuizSubmitRequest,
    QuizSubmitResponse,
    TaskQuizResponse,
    TaskSummary,
    TaskUpdateRequest,
    TaskUpdateResponse,
)
from dreamplan.db.deps import get_db
from dreamplan.db.models.activity_log import ActivityLog
from dreamplan.db.models.task import TASK_TYPE_QUIZ, DailyTask
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services.task_quiz import grade_answers, public_questions

router = APIRouter()


@router.get("/tasks", response_model=List[TaskSummary], tags=["tasks"])
def list_tasks(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the tasks"),
    plan_id: Optional[UUID] = Query(default=None),
    status: str = Query("all", pattern="^(all|open|completed)$"),
    db: Session = Depends(get_db),
) -> List[TaskSummary]:
    """List a user's tasks, optionally for one plan and by completion state."""
    request_id = getattr(http_request.state, "request_id", None)

    metadata: Dict[str, Any] = {
        "route": "/tasks",
        "user_id": str(user_id),
        "plan_id": str(plan_id) if plan_id else None,
        "status": status,
        "request_id": request_id,
    }

    with trace("task.list", metadata=metadata, user_id=str(user_id), request_id=request_id):
        query = db.query(DailyTask).filter(DailyTask.user_id == user_id)
        if plan_id:
            query = query.filter(DailyTask.plan_id == plan_id)
        if status == "open":
            query = query.filter(DailyTask.completed.is_(False))
        elif status == "completed":
            query = query.filter(DailyTask.completed.is_(True))
        tasks = query.order_by(asc(DailyTask.created_at)).all()

    log_metric("task.list.count", len(tasks), metadata={"user_id": str(user_id), "status": status})
    return [_serialize_task(task) for task in tasks]


@router.patch("/tasks/{task_id}", response_model=TaskUpdateResponse, tags=["tasks"])
def update_task_completion(
    task_id: UUID,
    payload: TaskUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskUpdateResponse:
    """Mark a proof task complete or incomplete."""
    task = _get_owned_task(db, task_id, payload.user_id)
    if payload.completed and task.task_type == TASK_TYPE_QUIZ and not task.completed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Quiz tasks are completed by passing their quiz",
        )

    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/tasks/{task_id}",
        "task_id": str(task_id),
        "user_id": str(payload.user_id),
        "completed": payload.completed,
        "request_id": request_id,
    }

    changed = False
    try:
        with trace("task.complete", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
            if payload.proof_note is not None:
                task.proof_note = payload.proof_note.strip() or None
            if task.completed != payload.completed:
                changed = True
                _set_completed(task, payload.completed)
                db.add(
                    _task_log(
                        task,
                        "task_completed" if payload.completed else "task_uncompleted",
                        {"completed": payload.completed, "has_proof_note": bool(task.proof_note)},
                        request_id,
                        reason="Task completion toggled",
                    )
                )
            db.add(task)
            db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("task.complete.changed", 1 if changed else 0, metadata={"task_id": str(task_id)})
    return TaskUpdateResponse(
        id=task.id,
        completed=bool(task.completed),
        completed_at=task.completed_at,
        request_id=request_id or "",
    )


@router.get("/tasks/{task_id}/quiz", response_model=TaskQuizResponse, tags=["tasks"])
def get_task_quiz(
    task_id: UUID,
    user_id: UUID = Query(..., description="User ID owning the task"),
    db: Session = Depends(get_db),
) -> TaskQuizResponse:
    """Quiz questions for a task, without the answer key."""
    task = _get_quiz_task(db, task_id, user_id)
    return TaskQuizResponse(
        task_id=task.id,
        title=task.title,
        questions=[QuizQuestionView(**question) for question in public_questions(task)],
    )


@router.post("/tasks/{task_id}/quiz", response_model=QuizSubmitResponse, tags=["tasks"])
def submit_task_quiz(
    task_id: UUID,
    payload: QuizSubmitRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> QuizSubmitResponse:
    """Grade answers; a fully correct attempt completes the task."""
    task = _get_quiz_task(db, task_id, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)

    try:
        grade = grade_answers(list(task.quiz_questions), payload.answers)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    try:
        with trace(
            "task.quiz_submit",
            metadata={"task_id": str(task_id), "correct": grade.correct, "total": grade.total},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            db.add(
                _task_log(
                    task,
                    "task_quiz_attempted",
                    {"correct": grade.correct, "total": grade.total, "passed": grade.passed},
                    request_id,
                    reason="Quiz submitted",
                )
            )
            if grade.passed and not task.completed:
                _set_completed(task, True)
                db.add(_task_log(task, "task_completed", {"completed": True, "via": "quiz"}, request_id, reason="Quiz passed"))
            db.add(task)
            db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("task.quiz.passed", 1 if grade.passed else 0, metadata={"task_id": str(task_id)})
    return QuizSubmitResponse(
        task_id=task.id,
        results=grade.results,
        correct=grade.correct,
        total=grade.total,
        passed=grade.passed,
        completed=bool(task.completed),
        request_id=request_id or "",
    )


def _get_owned_task(db: Session, task_id: UUID, user_id: UUID) -> DailyTask:
    task = db.get(DailyTask, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    if task.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task does not belong to user")
    return task


def _get_quiz_task(db: Session, task_id: UUID, user_id: UUID) -> DailyTask:
    task = _get_owned_task(db, task_id, user_id)
    if task.task_type != TASK_TYPE_QUIZ or not task.quiz_questions:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Task has no quiz")
    return task


def _set_completed(task: DailyTask, completed: bool) -> None:
    task.completed = completed
    task.completed_at = datetime.now(timezone.utc) if completed else None


def _task_log(
    task: DailyTask,
    action_type: str,
    extra: Dict[str, Any],
    request_id: Optional[str],
    *,
    reason: str,
) -> ActivityLog:
    return ActivityLog(
        user_id=task.user_id,
        action_type=action_type,
        action_payload={
            "task_id": str(task.id),
            "plan_id": str(task.plan_id),
            **extra,
            "request_id": request_id,
        },
        reason=reason,
    )


def _serialize_task(task: DailyTask) -> TaskSummary:
    return TaskSummary(
        id=task.id,
        plan_id=task.plan_id,
        title=task.title,
        task_type=task.task_type,
        completed=bool(task.completed),
        completed_at=task.completed_at,
        has_quiz=bool(task.quiz_questions),
        proof_note=task.proof_note,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )
