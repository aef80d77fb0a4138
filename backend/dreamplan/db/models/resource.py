"""Plan resource ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from dreamplan.db.base import Base


class Resource(Base):
    __tablename__ = "resources"
    __table_args__ = (Index("ix_resources_plan_id", "plan_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("plans.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    thumbnail = Column(Text, nullable=True)
    resource_type = Column(String(length=20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
