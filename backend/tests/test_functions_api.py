from __future__ import annotations

from dreamplan.core.config import settings
from dreamplan.core.errors import ConfigurationError, UpstreamServiceError
from dreamplan.services import habit_generator, llm_gateway, quiz_generator
from dreamplan.services.habit_generator import HabitPlan
from dreamplan.services.quiz_generator import QuizQuestion


def test_generate_habits_returns_habits_and_videos(client, monkeypatch) -> None:
    test_client, _ = client
    seen = {}

    def fake_generate(dream, timeline=None):
        seen["dream"] = dream
        seen["timeline"] = timeline
        return HabitPlan(
            habits=[f"✅ Habit {index} (10 min)" for index in range(5)],
            videos=[{"id": "abc", "title": "Intro", "thumbnail": "https://img.test/abc.jpg", "channelTitle": "Coach"}],
        )

    monkeypatch.setattr(habit_generator, "generate_habits", fake_generate)

    response = test_client.post(
        "/functions/generate-habits",
        json={
            "dream": "Learn guitar",
            "targetMonths": 3,
            "targetDate": "2027-01-19",
            "availableDays": ["Tue", "Thu"],
            "dailyHours": 1,
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data["habits"]) == 5
    assert data["videos"][0]["channelTitle"] == "Coach"
    assert seen["dream"] == "Learn guitar"
    assert seen["timeline"].available_days == ["Tue", "Thu"]
    assert seen["timeline"].is_complete()


def test_generate_habits_failure_hides_details(client, monkeypatch) -> None:
    test_client, _ = client
    monkeypatch.setattr(settings, "llm_api_key", "sk-very-secret")

    def failing(dream, timeline=None):
        raise UpstreamServiceError("LLM gateway error: 401 sk-very-secret", service="llm_gateway", status_code=401)

    monkeypatch.setattr(habit_generator, "generate_habits", failing)

    response = test_client.post("/functions/generate-habits", json={"dream": "Learn guitar"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Unable to generate habits. Please try again later.",
        "code": "GENERATION_ERROR",
    }
    assert "sk-very-secret" not in response.text


def test_generate_habits_missing_configuration(client, monkeypatch) -> None:
    test_client, _ = client

    def unconfigured(dream, timeline=None):
        raise ConfigurationError("YOUTUBE_API_KEY is not configured")

    monkeypatch.setattr(habit_generator, "generate_habits", unconfigured)

    response = test_client.post("/functions/generate-habits", json={"dream": "Learn guitar"})

    assert response.status_code == 500
    assert response.json()["code"] == "GENERATION_ERROR"


def test_generate_quiz_returns_questions(client, monkeypatch) -> None:
    test_client, _ = client
    monkeypatch.setattr(
        quiz_generator,
        "generate_quiz",
        lambda title: [
            QuizQuestion(question=f"What does {title} train?", options=["A", "B", "C", "D"], correct_answer=2),
            QuizQuestion(question="Second?", options=["A", "B", "C", "D"], correct_answer=0),
        ],
    )

    response = test_client.post("/functions/generate-quiz", json={"taskTitle": "Stretch"})

    assert response.status_code == 200
    questions = response.json()["questions"]
    assert questions[0]["question"] == "What does Stretch train?"
    assert questions[0]["correct_answer"] == 2


def test_generate_quiz_failure_reports_details(client, monkeypatch) -> None:
    test_client, _ = client

    def failing(title):
        raise UpstreamServiceError("LLM returned malformed quiz questions", service="llm_gateway")

    monkeypatch.setattr(quiz_generator, "generate_quiz", failing)

    response = test_client.post("/functions/generate-quiz", json={"taskTitle": "Stretch"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Unable to generate quiz",
        "details": "LLM returned malformed quiz questions",
    }


def test_generate_quiz_requires_title(client) -> None:
    test_client, _ = client

    response = test_client.post("/functions/generate-quiz", json={})

    assert response.status_code == 422


def test_chat_forwards_transcript(client, monkeypatch) -> None:
    test_client, _ = client
    seen = {}

    def fake_completion(messages):
        seen["messages"] = messages
        return {"choices": [{"message": {"role": "assistant", "content": "You got this!"}}]}

    monkeypatch.setattr(llm_gateway, "create_chat_completion", fake_completion)
    transcript = [
        {"role": "system", "content": "Be kind."},
        {"role": "user", "content": "I skipped practice."},
    ]

    response = test_client.post("/functions/chat", json={"messages": transcript})

    assert response.status_code == 200
    assert response.json()["choices"][0]["message"]["content"] == "You got this!"
    assert seen["messages"] == transcript


def test_chat_failure_returns_generic_error(client, monkeypatch) -> None:
    test_client, _ = client

    def failing(messages):
        raise UpstreamServiceError("LLM gateway error: 503", service="llm_gateway", status_code=503)

    monkeypatch.setattr(llm_gateway, "create_chat_completion", failing)

    response = test_client.post("/functions/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 500
    assert response.json() == {"error": "Unable to complete chat"}
