"""Grading for quiz-gated tasks."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from dreamplan.db.models.task import DailyTask


@dataclass
class QuizGrade:
    results: List[bool]

    @property
    def correct(self) -> int:
        return sum(1 for result in self.results if result)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> bool:
        return bool(self.results) and all(self.results)


def public_questions(task: DailyTask) -> List[Dict[str, Any]]:
    """Questions as shown to the user, without the answer key."""
    return [
        {"question": item.get("question", ""), "options": list(item.get("options") or [])}
        for item in task.quiz_questions or []
    ]


def grade_answers(questions: List[Dict[str, Any]], answers: List[int]) -> QuizGrade:
    if len(answers) != len(questions):
        raise ValueError(f"expected {len(questions)} answers, got {len(answers)}")
    return QuizGrade(
        results=[answer == question.get("correct_answer") for question, answer in zip(questions, answers)]
    )
