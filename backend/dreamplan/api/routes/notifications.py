"""Notification configuration and operational routes."""
from __future__ import annotations

from datetime import datetime
from time import perf_counter
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from dreamplan.api.schemas.notifications import ReminderRunRequest, ReminderRunResponse
from dreamplan.core.config import settings
from dreamplan.db.deps import get_db
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services.reminder_jobs import run_task_reminders


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/config")
def get_notifications_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace(
        "notifications.config",
        metadata={"provider": settings.notifications_provider},
        request_id=request_id,
    ):
        return {
            "enabled": settings.notifications_enabled,
            "provider": settings.notifications_provider,
            "scheduler_enabled": settings.scheduler_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "minute": settings.reminder_job_minute,
            },
            "request_id": request_id or "",
        }


@router.post("/reminders/run-now", response_model=ReminderRunResponse)
def run_reminders_now(
    request: Request,
    payload: ReminderRunRequest | None = None,
    db: Session = Depends(get_db),
) -> ReminderRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    params = payload or ReminderRunRequest()
    request_id = getattr(request.state, "request_id", None)
    now = datetime.now(ZoneInfo(settings.scheduler_timezone))
    if params.hour is not None:
        now = now.replace(hour=params.hour)

    start = perf_counter()
    with trace("notifications.run_now", metadata={"hour": now.hour}, request_id=request_id):
        result = run_task_reminders(db, now=now)
    log_metric("notifications.run_now.latency_ms", (perf_counter() - start) * 1000)

    return ReminderRunResponse(
        hour=now.hour,
        users_due=result.users_due,
        reminders_sent=result.reminders_sent,
        skipped=result.skipped,
        request_id=request_id or "",
    )
