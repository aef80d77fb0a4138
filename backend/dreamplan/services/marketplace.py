"""Built-in plan templates offered in the marketplace."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class PlanTemplate:
    title: str
    description: str
    tags: List[str] = field(default_factory=list)
    rating: float = 0.0
    users: int = 0

    def matches(self, query: str) -> bool:
        needle = query.lower()
        haystack = [self.title, self.description, *self.tags]
        return any(needle in value.lower() for value in haystack)


TEMPLATES: List[PlanTemplate] = [
    PlanTemplate(
        title="🎓 GATE Exam Preparation",
        description="Complete study routine for cracking competitive exams",
        tags=["Study", "Exam", "Engineering"],
        rating=4.8,
        users=1234,
    ),
    PlanTemplate(
        title="💪 Fitness Transformation",
        description="Build strength, endurance, and healthy eating habits",
        tags=["Health", "Fitness", "Wellness"],
        rating=4.9,
        users=2156,
    ),
    PlanTemplate(
        title="🚀 Startup Founder Routine",
        description="Daily habits for building a successful startup",
        tags=["Business", "Productivity", "Growth"],
        rating=4.7,
        users=892,
    ),
    PlanTemplate(
        title="🎨 Creative Artist Journey",
        description="Develop your artistic skills with daily practice",
        tags=["Art", "Creativity", "Skills"],
        rating=4.6,
        users=1543,
    ),
    PlanTemplate(
        title="📚 Reading Challenge",
        description="Read 50 books a year with this structured plan",
        tags=["Reading", "Learning", "Growth"],
        rating=4.9,
        users=3421,
    ),
    PlanTemplate(
        title="🧘 Mindfulness Master",
        description="Build a meditation and mindfulness practice",
        tags=["Wellness", "Mental Health", "Peace"],
        rating=4.8,
        users=2789,
    ),
]


def search_templates(query: Optional[str] = None) -> List[tuple[int, PlanTemplate]]:
    """Return ``(index, template)`` pairs whose text contains ``query``."""
    cleaned = (query or "").strip()
    return [
        (index, template)
        for index, template in enumerate(TEMPLATES)
        if not cleaned or template.matches(cleaned)
    ]


def get_template(index: int) -> Optional[PlanTemplate]:
    if 0 <= index < len(TEMPLATES):
        return TEMPLATES[index]
    return None
