"""Notification preference routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dreamplan.api.schemas.preferences import (
    NotificationPreferencesRequest,
    NotificationPreferencesResponse,
)
from dreamplan.db.deps import get_db
from dreamplan.db.models.notification_preferences import NotificationPreferences
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services.preferences_service import get_or_create_preferences, save_preferences

router = APIRouter(prefix="/notification-preferences", tags=["preferences"])


@router.get("", response_model=NotificationPreferencesResponse)
def read_preferences(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the preferences"),
    db: Session = Depends(get_db),
) -> NotificationPreferencesResponse:
    """Return preferences, creating the defaults on first read."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("preferences.read", metadata={"route": "/notification-preferences"}, user_id=str(user_id), request_id=request_id):
        try:
            prefs = get_or_create_preferences(db, user_id)
        except SQLAlchemyError as exc:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to load notification settings",
            ) from exc
    return _serialize(prefs, request_id)


@router.put("", response_model=NotificationPreferencesResponse)
def update_preferences(
    payload: NotificationPreferencesRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> NotificationPreferencesResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "preferences.update",
        metadata={"enabled": payload.enabled, "ai_tone": payload.ai_tone},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        try:
            prefs = save_preferences(
                db,
                payload.user_id,
                enabled=payload.enabled,
                reminder_time=payload.reminder_time,
                ai_tone=payload.ai_tone,
                notification_types=payload.notification_types,
            )
        except SQLAlchemyError as exc:
            db.rollback()
            log_metric("preferences.update.success", 0)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to save settings",
            ) from exc

    log_metric("preferences.update.success", 1)
    return _serialize(prefs, request_id)


def _serialize(prefs: NotificationPreferences, request_id: str | None) -> NotificationPreferencesResponse:
    return NotificationPreferencesResponse(
        user_id=prefs.user_id,
        enabled=bool(prefs.enabled),
        reminder_time=prefs.reminder_time,
        ai_tone=prefs.ai_tone,
        notification_types=list(prefs.notification_types or []),
        updated_at=prefs.updated_at,
        request_id=request_id or "",
    )
