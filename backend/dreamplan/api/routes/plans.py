"""Plan intake and retrieval API routes."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dreamplan.api.schemas.plan import (
    PlanCreateRequest,
    PlanResponse,
    PlanSummary,
    ResourcePayload,
    TaskPayload,
)
from dreamplan.db.deps import get_db
from dreamplan.db.models.plan import Plan
from dreamplan.db.models.resource import Resource
from dreamplan.db.models.task import DailyTask
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services.habit_generator import TimelineConstraints
from dreamplan.services.plan_provisioning import PlanProvisioningError, provision_plan

logger = logging.getLogger(__name__)

router = APIRouter()

ADD_PLAN_FAILED = "Failed to add plan. Please try again."


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED, tags=["plans"])
def create_plan_endpoint(
    payload: PlanCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> PlanResponse:
    """Create a plan from a goal and provision its tasks, quizzes and resources."""
    timeline = TimelineConstraints(
        target_months=payload.target_months,
        target_date=payload.target_date.isoformat() if payload.target_date else None,
        available_days=list(payload.available_days or []),
        daily_hours=payload.daily_hours,
    )
    plan_metadata: Dict[str, Any] = {"source": "intake"}
    if timeline.is_complete():
        plan_metadata["timeline"] = {
            "target_months": timeline.target_months,
            "target_date": timeline.target_date,
            "available_days": timeline.available_days,
            "daily_hours": timeline.daily_hours,
        }
    return run_provisioning(
        db,
        http_request,
        user_id=payload.user_id,
        title=payload.title,
        description=payload.description,
        timeline=timeline,
        plan_metadata=plan_metadata,
    )


@router.get("/plans", response_model=List[PlanSummary], tags=["plans"])
def list_plans(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the plans"),
    db: Session = Depends(get_db),
) -> List[PlanSummary]:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("plan.list", metadata={"route": "/plans"}, user_id=str(user_id), request_id=request_id):
        plans = db.query(Plan).filter(Plan.user_id == user_id).order_by(Plan.created_at.desc()).all()
    log_metric("plan.list.count", len(plans), metadata={"user_id": str(user_id)})
    return [_serialize_summary(plan) for plan in plans]


@router.get("/plans/{plan_id}", response_model=PlanResponse, tags=["plans"])
def get_plan(
    plan_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the plan"),
    db: Session = Depends(get_db),
) -> PlanResponse:
    plan = db.get(Plan, plan_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    if plan.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Plan does not belong to user")

    tasks = db.query(DailyTask).filter(DailyTask.plan_id == plan.id).order_by(DailyTask.created_at.asc()).all()
    resources = db.query(Resource).filter(Resource.plan_id == plan.id).order_by(Resource.created_at.asc()).all()
    request_id = getattr(http_request.state, "request_id", None)
    return serialize_plan(plan, tasks, resources, request_id=request_id)


def run_provisioning(
    db: Session,
    http_request: Request,
    *,
    user_id: UUID,
    title: str,
    description: Optional[str],
    timeline: Optional[TimelineConstraints] = None,
    plan_metadata: Optional[Dict[str, Any]] = None,
) -> PlanResponse:
    """Shared by plan intake and marketplace templates; maps failures to HTTP errors."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        result = provision_plan(
            db,
            user_id=user_id,
            title=title,
            description=description,
            timeline=timeline,
            plan_metadata=plan_metadata,
            request_id=request_id,
        )
    except PlanProvisioningError as exc:
        logger.error("Error adding plan (stage=%s, plan_id=%s): %s", exc.stage, exc.plan_id, exc)
        status_code = status.HTTP_502_BAD_GATEWAY if exc.stage == "habits" else status.HTTP_500_INTERNAL_SERVER_ERROR
        raise HTTPException(status_code=status_code, detail=ADD_PLAN_FAILED) from exc
    except SQLAlchemyError as exc:
        logger.exception("Error adding plan resources")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=ADD_PLAN_FAILED) from exc

    return serialize_plan(
        result.plan,
        result.tasks,
        result.resources,
        quiz_failures=result.quiz_failures,
        request_id=request_id,
    )


def serialize_plan(
    plan: Plan,
    tasks: List[DailyTask],
    resources: List[Resource],
    *,
    quiz_failures: int = 0,
    request_id: Optional[str] = None,
) -> PlanResponse:
    return PlanResponse(
        id=plan.id,
        user_id=plan.user_id,
        title=plan.title,
        description=plan.description,
        created_at=plan.created_at,
        metadata=dict(plan.metadata_json or {}),
        tasks=[_serialize_task(task) for task in tasks],
        resources=[_serialize_resource(resource) for resource in resources],
        quiz_failures=quiz_failures,
        request_id=request_id or "",
    )


def _serialize_summary(plan: Plan) -> PlanSummary:
    return PlanSummary(
        id=plan.id,
        user_id=plan.user_id,
        title=plan.title,
        description=plan.description,
        created_at=plan.created_at,
    )


def _serialize_task(task: DailyTask) -> TaskPayload:
    return TaskPayload(
        id=task.id,
        plan_id=task.plan_id,
        title=task.title,
        completed=bool(task.completed),
        task_type=task.task_type,
        has_quiz=bool(task.quiz_questions),
    )


def _serialize_resource(resource: Resource) -> ResourcePayload:
    return ResourcePayload(
        id=resource.id,
        title=resource.title,
        url=resource.url,
        thumbnail=resource.thumbnail,
        resource_type=resource.resource_type,
    )
