"""Coaching chat session routes."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dreamplan.api.schemas.chat import (
    ChatMessagePayload,
    ChatMessageRequest,
    ChatReplyResponse,
    ChatSessionCreateRequest,
    ChatSessionResponse,
    CoachingModeRequest,
    CoachingModeResponse,
)
from dreamplan.core.errors import DreamPlanError
from dreamplan.db.deps import get_db
from dreamplan.db.models.activity_log import ActivityLog
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services.chat_assistant import ChatSession, ChatSessionStore, chat_sessions
from dreamplan.services.user_service import get_or_create_user, set_coaching_mode

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

CHAT_FAILED = "Something went wrong. Please try again."


def get_chat_store() -> ChatSessionStore:
    return chat_sessions


@router.post("/chat/sessions", response_model=ChatSessionResponse, status_code=status.HTTP_201_CREATED)
def open_chat_session(
    payload: ChatSessionCreateRequest,
    db: Session = Depends(get_db),
    store: ChatSessionStore = Depends(get_chat_store),
) -> ChatSessionResponse:
    """Start a fresh transcript seeded with the persona greeting, closing any earlier one."""
    get_or_create_user(db, payload.user_id)
    db.commit()
    replaced = store.close_for_user(payload.user_id)
    session = store.add(ChatSession.open(db, payload.user_id))
    if replaced:
        logger.debug("Replaced %s open chat session(s) for user %s", replaced, payload.user_id)
    log_metric("chat.session.opened", 1, metadata={"mode": session.mode})
    return _serialize_session(session)


@router.get("/chat/sessions/{session_id}", response_model=ChatSessionResponse)
def get_chat_session(
    session_id: UUID,
    store: ChatSessionStore = Depends(get_chat_store),
) -> ChatSessionResponse:
    return _serialize_session(_require_session(store, session_id))


@router.post("/chat/sessions/{session_id}/messages", response_model=ChatReplyResponse)
def send_chat_message(
    session_id: UUID,
    payload: ChatMessageRequest,
    http_request: Request,
    store: ChatSessionStore = Depends(get_chat_store),
) -> ChatReplyResponse:
    session = _require_session(store, session_id)
    if not payload.content.strip():
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="content must not be empty")

    request_id = getattr(http_request.state, "request_id", None)
    try:
        reply = session.send(payload.content)
    except (DreamPlanError, KeyError, IndexError, TypeError) as exc:
        logger.error("Chat error (session=%s, request=%s): %s", session_id, request_id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=CHAT_FAILED) from exc

    return ChatReplyResponse(
        session_id=session.id,
        reply=ChatMessagePayload(role=reply.role, content=reply.content),
        messages=[ChatMessagePayload(**message.as_dict()) for message in session.messages],
    )


@router.delete("/chat/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def close_chat_session(
    session_id: UUID,
    store: ChatSessionStore = Depends(get_chat_store),
) -> Response:
    if not store.close(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat session not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/profile/coaching-mode", response_model=CoachingModeResponse)
def change_coaching_mode(
    payload: CoachingModeRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    store: ChatSessionStore = Depends(get_chat_store),
) -> CoachingModeResponse:
    """Persist the coaching mode; falls back to session-only when saving fails."""
    request_id = getattr(http_request.state, "request_id", None)
    session = _require_session(store, payload.session_id) if payload.session_id else None
    if session is not None and session.user_id != payload.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Chat session does not belong to user")
    if session is not None:
        session.switch_mode(payload.mode)

    persisted = True
    with trace("chat.mode_change", metadata={"mode": payload.mode}, user_id=str(payload.user_id), request_id=request_id):
        try:
            set_coaching_mode(db, payload.user_id, payload.mode)
            db.add(
                ActivityLog(
                    user_id=payload.user_id,
                    action_type="coaching_mode_changed",
                    action_payload={"mode": payload.mode, "request_id": request_id},
                    reason="Coaching mode updated",
                )
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            persisted = False
            logger.error("Error saving coaching mode for user %s", payload.user_id, exc_info=True)

    log_metric("chat.mode_change.persisted", 1 if persisted else 0, metadata={"mode": payload.mode})
    message = f"Switched to {payload.mode} mode!" if persisted else "Coaching mode changed for this session"
    return CoachingModeResponse(mode=payload.mode, persisted=persisted, message=message)


def _require_session(store: ChatSessionStore, session_id: UUID) -> ChatSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat session not found")
    return session


def _serialize_session(session: ChatSession) -> ChatSessionResponse:
    return ChatSessionResponse(
        session_id=session.id,
        user_id=session.user_id,
        mode=session.mode,
        messages=[ChatMessagePayload(**message.as_dict()) for message in session.messages],
    )
