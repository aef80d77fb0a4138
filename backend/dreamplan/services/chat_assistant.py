"""Coaching chat sessions with persona-specific prompts."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import Lock
from time import monotonic
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from dreamplan.core.config import settings
from dreamplan.db.models.user import User
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services import llm_gateway
from dreamplan.services.user_service import COACHING_MODES, coaching_mode_of, display_name

logger = logging.getLogger(__name__)

ChatCompletion = Callable[[List[Dict[str, str]]], Dict[str, Any]]

GREETINGS: Dict[str, str] = {
    "motivational": (
        "Hey there, {name}! 👋 I'm your AI Buddy, here to keep you motivated and help you crush those habits! "
        "What's on your mind?"
    ),
    "casual": "Hey {name}! 😊 What's up? Ready to chat about whatever's on your mind?",
    "professional": (
        "Hello {name}. I'm here to provide structured guidance on your goals and habits. "
        "How can I assist you today?"
    ),
}

PERSONA_PROMPTS: Dict[str, str] = {
    "motivational": (
        "You are an enthusiastic motivational coach helping users achieve their dreams through daily habits. "
        "Be highly energetic, inspiring, and use plenty of emojis! Push users to take action and believe in "
        "themselves. Keep responses concise and actionable."
    ),
    "casual": (
        "You are a casual, friendly AI buddy who chats naturally like a good friend. Be relaxed, "
        "conversational, and easy-going. Use simple language, occasional emojis, and keep things laid-back "
        "while still being helpful. No pressure, just chill vibes."
    ),
    "professional": (
        "You are a professional life coach providing thoughtful, structured advice on building habits and "
        "achieving goals. Be clear, analytical, and focus on actionable strategies and frameworks. Keep "
        "responses organized and strategic."
    ),
}


class ChatSessionClosed(Exception):
    """Raised when a closed session is used."""


def greeting_for(mode: str, name: str) -> str:
    template = GREETINGS.get(mode) or GREETINGS["motivational"]
    return template.format(name=name)


def system_prompt_for(mode: str, name: str) -> str:
    name_prefix = f"The user's name is {name}. Use their name naturally in conversation. " if name else ""
    return name_prefix + (PERSONA_PROMPTS.get(mode) or PERSONA_PROMPTS["motivational"])


@dataclass
class ChatMessage:
    role: str
    content: str

    def as_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatSession:
    """
    One open chat dialog.

    The transcript lives only as long as the session; closing and reopening
    starts over from a fresh greeting.
    """

    user_id: UUID
    user_name: str
    mode: str
    id: UUID = field(default_factory=uuid4)
    messages: List[ChatMessage] = field(default_factory=list)
    closed: bool = False

    @classmethod
    def open(cls, db: Session, user_id: UUID) -> "ChatSession":
        user = db.get(User, user_id)
        session = cls(user_id=user_id, user_name=display_name(user), mode=coaching_mode_of(user))
        session.messages.append(ChatMessage(role="assistant", content=greeting_for(session.mode, session.user_name)))
        return session

    def close(self) -> None:
        self.closed = True
        self.messages.clear()

    def switch_mode(self, mode: str) -> None:
        if mode not in COACHING_MODES:
            raise ValueError(f"Unknown coaching mode: {mode}")
        self.mode = mode

    def system_prompt(self) -> str:
        return system_prompt_for(self.mode, self.user_name)

    def send(self, text: str, completion: Optional[ChatCompletion] = None) -> ChatMessage:
        """Append ``text`` and the assistant's full reply to the transcript."""
        if self.closed:
            raise ChatSessionClosed(f"Chat session {self.id} is closed")
        if not text or not text.strip():
            raise ValueError("message must not be empty")

        completion = completion or llm_gateway.create_chat_completion
        self.messages.append(ChatMessage(role="user", content=text))
        payload = [{"role": "system", "content": self.system_prompt()}]
        payload.extend(message.as_dict() for message in self.messages)

        with trace(
            "chat.completion",
            metadata={"mode": self.mode, "turns": len(self.messages), "session_id": str(self.id)},
            user_id=str(self.user_id),
        ):
            response = completion(payload)

        reply = ChatMessage(role="assistant", content=response["choices"][0]["message"]["content"])
        self.messages.append(reply)
        log_metric("chat.turn", 1, metadata={"mode": self.mode})
        return reply


class ChatSessionStore:
    """
    Thread-safe registry of open sessions, keyed by session id.

    A user holds at most one session: opening a new one closes the old.
    Sessions not looked up for ``idle_timeout_seconds`` are closed and dropped.
    """

    def __init__(
        self,
        idle_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._sessions: Dict[UUID, ChatSession] = {}
        self._last_seen: Dict[UUID, float] = {}
        self._idle_timeout = idle_timeout_seconds
        self._clock = clock
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def add(self, session: ChatSession) -> ChatSession:
        with self._lock:
            stale = self._pop_idle()
            self._sessions[session.id] = session
            self._last_seen[session.id] = self._clock()
        _close_all(stale)
        return session

    def get(self, session_id: UUID) -> Optional[ChatSession]:
        with self._lock:
            stale = self._pop_idle()
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_seen[session_id] = self._clock()
        _close_all(stale)
        return session

    def close(self, session_id: UUID) -> bool:
        with self._lock:
            session = self._pop(session_id)
        if session is None:
            return False
        session.close()
        logger.debug("Closed chat session %s", session_id)
        return True

    def close_for_user(self, user_id: UUID) -> int:
        """Close every open session owned by ``user_id``; returns how many were closed."""
        with self._lock:
            owned_ids = [session_id for session_id, session in self._sessions.items() if session.user_id == user_id]
            owned = [self._pop(session_id) for session_id in owned_ids]
        _close_all(owned)
        return len(owned)

    def clear(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._last_seen.clear()
        _close_all(sessions)

    def _pop(self, session_id: UUID) -> Optional[ChatSession]:
        self._last_seen.pop(session_id, None)
        return self._sessions.pop(session_id, None)

    def _pop_idle(self) -> List[ChatSession]:
        if not self._idle_timeout:
            return []
        cutoff = self._clock() - self._idle_timeout
        expired = [session_id for session_id, seen in self._last_seen.items() if seen < cutoff]
        if expired:
            logger.debug("Evicting %s idle chat sessions", len(expired))
        return [self._pop(session_id) for session_id in expired]


def _close_all(sessions: List[Optional[ChatSession]]) -> None:
    for session in sessions:
        if session is not None:
            session.close()


chat_sessions = ChatSessionStore(idle_timeout_seconds=settings.chat_session_idle_minutes * 60)
