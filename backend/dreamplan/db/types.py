"""Column types shared by the ORM models."""
from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON

# JSONB in Postgres; the in-memory SQLite used by tests only knows JSON.
JSONBCompat = JSON().with_variant(JSONB(), "postgresql")
