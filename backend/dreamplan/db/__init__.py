"""ORM base and models; importing this package registers every table."""

from dreamplan.db.base import Base
from dreamplan.db.models import (  # noqa: F401  (registers tables on Base.metadata)
    ActivityLog,
    DailyTask,
    NotificationPreferences,
    Plan,
    Resource,
    User,
)

__all__ = ["Base"]
