"""User profile ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from dreamplan.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    full_name = Column(Text, nullable=True)
    coaching_mode = Column(String(length=20), nullable=False, default="motivational", server_default=sa_text("'motivational'"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
