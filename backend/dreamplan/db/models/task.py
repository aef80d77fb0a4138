"""Daily task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from dreamplan.db.base import Base
from dreamplan.db.types import JSONBCompat

TASK_TYPE_PROOF = "proof"
TASK_TYPE_QUIZ = "quiz"


class DailyTask(Base):
    __tablename__ = "daily_tasks"
    __table_args__ = (
        Index("ix_daily_tasks_user_id", "user_id"),
        Index("ix_daily_tasks_plan_id", "plan_id"),
        Index("ix_daily_tasks_completed", "completed"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("plans.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    completed = Column(Boolean, nullable=False, default=False, server_default=sa_text("false"))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    task_type = Column(String(length=10), nullable=False, default=TASK_TYPE_PROOF, server_default=sa_text("'proof'"))
    # NULL until a quiz has been generated for a quiz-type task.
    quiz_questions = Column(JSONBCompat, nullable=True)
    proof_note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
