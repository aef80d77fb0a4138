from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dreamplan.api.routes.chat import get_chat_store
from dreamplan.core.errors import UpstreamServiceError
from dreamplan.db import Base
from dreamplan.db.deps import get_db
from dreamplan.main import app
from dreamplan.services import habit_generator, quiz_generator
from dreamplan.services.chat_assistant import ChatSessionStore
from dreamplan.services.habit_generator import HabitPlan
from dreamplan.services.quiz_generator import QuizQuestion


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield factory
    engine.dispose()


@pytest.fixture()
def chat_store():
    store = ChatSessionStore()
    yield store
    store.clear()


@pytest.fixture()
def client(session_factory, chat_store):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_chat_store] = lambda: chat_store
    with TestClient(app) as test_client:
        yield test_client, session_factory
    app.dependency_overrides.clear()


HABITS = [
    "🎸 Tune your guitar and practice open chords (15 min)",
    "🎵 Learn the G-C-D progression slowly (20 min)",
    "👂 Ear training with simple intervals (10 min)",
    "🎶 Strumming patterns with a metronome (15 min)",
    "📹 Record yourself playing one song (10 min)",
]

VIDEOS = [
    {"id": f"vid{i}", "title": f"Guitar lesson {i}", "thumbnail": f"https://img.test/{i}.jpg", "channelTitle": "Coach"}
    for i in range(5)
]


def make_quiz(count: int = 2) -> list[QuizQuestion]:
    return [
        QuizQuestion(question=f"Question {index}?", options=["A", "B", "C", "D"], correct_answer=index % 4)
        for index in range(count)
    ]


@pytest.fixture()
def fake_generators(monkeypatch):
    """Replace the LLM and video calls used during plan provisioning."""
    state = {"habit_calls": [], "quiz_calls": [], "fail_habits": False, "fail_quiz_for": set()}

    def generate_habits(dream, timeline=None, **kwargs):
        state["habit_calls"].append((dream, timeline))
        if state["fail_habits"]:
            raise UpstreamServiceError("LLM gateway error: 500", service="llm_gateway", status_code=500)
        return HabitPlan(habits=list(HABITS), videos=[dict(video) for video in VIDEOS])

    def generate_quiz(task_title):
        state["quiz_calls"].append(task_title)
        if task_title in state["fail_quiz_for"]:
            raise UpstreamServiceError("LLM returned malformed quiz questions", service="llm_gateway")
        return make_quiz(2)

    monkeypatch.setattr(habit_generator, "generate_habits", generate_habits)
    monkeypatch.setattr(quiz_generator, "generate_quiz", generate_quiz)
    return state


@pytest.fixture()
def fail_commit_with_pending(monkeypatch):
    """Make ``Session.commit`` raise once a new instance of the armed model is pending."""
    original_commit = Session.commit

    def arm(model):
        def commit(self):
            if any(isinstance(obj, model) for obj in self.new):
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return original_commit(self)

        monkeypatch.setattr(Session, "commit", commit)

    return arm
