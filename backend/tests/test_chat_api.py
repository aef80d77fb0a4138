from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from dreamplan.api.routes import chat as chat_routes
from dreamplan.core.errors import UpstreamServiceError
from dreamplan.db.models.activity_log import ActivityLog
from dreamplan.db.models.user import User
from dreamplan.services import llm_gateway
from dreamplan.services.chat_assistant import (
    GREETINGS,
    ChatSession,
    ChatSessionClosed,
    ChatSessionStore,
    system_prompt_for,
)


@pytest.fixture()
def completions(monkeypatch):
    calls = []

    def fake_completion(messages):
        calls.append(messages)
        return {"choices": [{"message": {"role": "assistant", "content": f"Reply {len(calls)}"}}]}

    monkeypatch.setattr(llm_gateway, "create_chat_completion", fake_completion)
    return calls


def _seed_user(session_factory, user_id, *, full_name=None, mode="motivational") -> None:
    with session_factory() as db:
        db.add(User(id=user_id, full_name=full_name, coaching_mode=mode))
        db.commit()


def test_open_session_greets_by_persona(client) -> None:
    test_client, session_factory = client
    user_id = uuid4()
    _seed_user(session_factory, user_id, full_name="Sam", mode="casual")

    response = test_client.post("/chat/sessions", json={"user_id": str(user_id)})

    assert response.status_code == 201
    data = response.json()
    assert data["mode"] == "casual"
    assert data["messages"] == [{"role": "assistant", "content": GREETINGS["casual"].format(name="Sam")}]


def test_open_session_for_unknown_user_uses_defaults(client) -> None:
    test_client, _ = client

    response = test_client.post("/chat/sessions", json={"user_id": str(uuid4())})

    assert response.status_code == 201
    data = response.json()
    assert data["mode"] == "motivational"
    assert "Friend" in data["messages"][0]["content"]


def test_send_message_keeps_transcript_and_system_prompt(client, completions) -> None:
    test_client, session_factory = client
    user_id = uuid4()
    _seed_user(session_factory, user_id, full_name="Sam", mode="professional")
    session_id = test_client.post("/chat/sessions", json={"user_id": str(user_id)}).json()["session_id"]

    first = test_client.post(f"/chat/sessions/{session_id}/messages", json={"content": "How do I focus?"})
    second = test_client.post(f"/chat/sessions/{session_id}/messages", json={"content": "Thanks"})

    assert first.status_code == 200
    assert first.json()["reply"] == {"role": "assistant", "content": "Reply 1"}
    assert [message["role"] for message in second.json()["messages"]] == [
        "assistant",
        "user",
        "assistant",
        "user",
        "assistant",
    ]
    sent = completions[1]
    assert sent[0] == {"role": "system", "content": system_prompt_for("professional", "Sam")}
    assert sent[-1] == {"role": "user", "content": "Thanks"}
    assert len(sent) == 5


def test_send_message_failure_keeps_user_message(client, monkeypatch) -> None:
    test_client, _ = client
    session_id = test_client.post("/chat/sessions", json={"user_id": str(uuid4())}).json()["session_id"]

    def failing(messages):
        raise UpstreamServiceError("LLM gateway error: 500", service="llm_gateway", status_code=500)

    monkeypatch.setattr(llm_gateway, "create_chat_completion", failing)

    response = test_client.post(f"/chat/sessions/{session_id}/messages", json={"content": "Hello?"})

    assert response.status_code == 502
    assert response.json() == {"detail": "Something went wrong. Please try again."}
    transcript = test_client.get(f"/chat/sessions/{session_id}").json()["messages"]
    assert transcript[-1] == {"role": "user", "content": "Hello?"}


def test_blank_message_is_rejected(client, completions) -> None:
    test_client, _ = client
    session_id = test_client.post("/chat/sessions", json={"user_id": str(uuid4())}).json()["session_id"]

    response = test_client.post(f"/chat/sessions/{session_id}/messages", json={"content": "   "})

    assert response.status_code == 422
    assert completions == []


def test_mode_change_applies_to_session_and_next_session(client, completions) -> None:
    test_client, session_factory = client
    user_id = uuid4()
    session_id = test_client.post("/chat/sessions", json={"user_id": str(user_id)}).json()["session_id"]

    response = test_client.put(
        "/profile/coaching-mode",
        json={"user_id": str(user_id), "mode": "professional", "session_id": session_id},
    )

    assert response.status_code == 200
    assert response.json() == {"mode": "professional", "persisted": True, "message": "Switched to professional mode!"}
    test_client.post(f"/chat/sessions/{session_id}/messages", json={"content": "Plan my week"})
    assert completions[0][0] == {"role": "system", "content": system_prompt_for("professional", "Friend")}
    with session_factory() as db:
        assert db.get(User, user_id).coaching_mode == "professional"

    fresh = test_client.post("/chat/sessions", json={"user_id": str(user_id)}).json()
    assert fresh["mode"] == "professional"
    assert fresh["messages"][0]["content"] == GREETINGS["professional"].format(name="Friend")


def test_mode_change_degrades_when_save_fails(client, monkeypatch) -> None:
    test_client, _ = client
    user_id = uuid4()
    session_id = test_client.post("/chat/sessions", json={"user_id": str(user_id)}).json()["session_id"]

    def broken_update(db, user_id, mode):
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    monkeypatch.setattr(chat_routes, "set_coaching_mode", broken_update)

    response = test_client.put(
        "/profile/coaching-mode",
        json={"user_id": str(user_id), "mode": "casual", "session_id": session_id},
    )

    assert response.status_code == 200
    assert response.json() == {"mode": "casual", "persisted": False, "message": "Coaching mode changed for this session"}
    assert test_client.get(f"/chat/sessions/{session_id}").json()["mode"] == "casual"


def test_mode_change_rejects_unknown_mode(client) -> None:
    test_client, _ = client

    response = test_client.put("/profile/coaching-mode", json={"user_id": str(uuid4()), "mode": "grumpy"})

    assert response.status_code == 422


def test_mode_change_on_foreign_session_is_forbidden(client) -> None:
    test_client, _ = client
    session_id = test_client.post("/chat/sessions", json={"user_id": str(uuid4())}).json()["session_id"]

    response = test_client.put(
        "/profile/coaching-mode",
        json={"user_id": str(uuid4()), "mode": "casual", "session_id": session_id},
    )

    assert response.status_code == 403


def test_closed_session_is_gone(client) -> None:
    test_client, _ = client
    session_id = test_client.post("/chat/sessions", json={"user_id": str(uuid4())}).json()["session_id"]

    assert test_client.delete(f"/chat/sessions/{session_id}").status_code == 204
    assert test_client.get(f"/chat/sessions/{session_id}").status_code == 404
    assert test_client.delete(f"/chat/sessions/{session_id}").status_code == 404


def test_session_object_rejects_use_after_close() -> None:
    session = ChatSession(user_id=uuid4(), user_name="Sam", mode="casual")
    session.close()

    with pytest.raises(ChatSessionClosed):
        session.send("hi", completion=lambda messages: {})


def test_reopening_replaces_the_previous_session(client, chat_store, completions) -> None:
    test_client, _ = client
    user_id = str(uuid4())
    first = test_client.post("/chat/sessions", json={"user_id": user_id}).json()["session_id"]
    test_client.post(f"/chat/sessions/{first}/messages", json={"content": "Remember this"})

    for _ in range(5):
        latest = test_client.post("/chat/sessions", json={"user_id": user_id}).json()

    assert test_client.get(f"/chat/sessions/{first}").status_code == 404
    assert len(chat_store) == 1
    assert [message["role"] for message in latest["messages"]] == ["assistant"]


def test_reopening_keeps_other_users_sessions(client, chat_store) -> None:
    test_client, _ = client
    other = test_client.post("/chat/sessions", json={"user_id": str(uuid4())}).json()["session_id"]

    test_client.post("/chat/sessions", json={"user_id": str(uuid4())})

    assert test_client.get(f"/chat/sessions/{other}").status_code == 200
    assert len(chat_store) == 2


def test_idle_sessions_are_evicted() -> None:
    now = [1000.0]
    store = ChatSessionStore(idle_timeout_seconds=60, clock=lambda: now[0])
    idle = store.add(ChatSession(user_id=uuid4(), user_name="Sam", mode="casual"))
    active = store.add(ChatSession(user_id=uuid4(), user_name="Alex", mode="casual"))

    now[0] += 45
    assert store.get(active.id) is active
    now[0] += 30

    assert store.get(idle.id) is None
    assert idle.closed is True
    assert store.get(active.id) is active
    assert len(store) == 1


def test_mode_change_with_unknown_session_is_not_found(client) -> None:
    test_client, session_factory = client
    user_id = uuid4()

    response = test_client.put(
        "/profile/coaching-mode",
        json={"user_id": str(user_id), "mode": "casual", "session_id": str(uuid4())},
    )

    assert response.status_code == 404
    with session_factory() as db:
        assert db.get(User, user_id) is None


def test_mode_and_audit_row_are_saved_together(client, monkeypatch) -> None:
    test_client, session_factory = client
    user_id = uuid4()
    _seed_user(session_factory, user_id, mode="motivational")

    def unsavable_log(**kwargs):
        # action_type is NOT NULL, so the shared commit fails.
        return ActivityLog(**{**kwargs, "action_type": None})

    monkeypatch.setattr(chat_routes, "ActivityLog", unsavable_log)

    response = test_client.put("/profile/coaching-mode", json={"user_id": str(user_id), "mode": "casual"})

    assert response.status_code == 200
    assert response.json()["persisted"] is False
    with session_factory() as db:
        assert db.get(User, user_id).coaching_mode == "motivational"
        assert db.query(ActivityLog).count() == 0


def test_mode_change_writes_audit_row(client) -> None:
    test_client, session_factory = client
    user_id = uuid4()

    test_client.put("/profile/coaching-mode", json={"user_id": str(user_id), "mode": "casual"})

    with session_factory() as db:
        log = db.query(ActivityLog).one()
        assert log.action_type == "coaching_mode_changed"
        assert log.action_payload["mode"] == "casual"
        assert db.get(User, user_id).coaching_mode == "casual"
