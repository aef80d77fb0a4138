"""ORM models exposed for metadata discovery."""
from dreamplan.db.models.activity_log import ActivityLog
from dreamplan.db.models.notification_preferences import NotificationPreferences
from dreamplan.db.models.plan import Plan
from dreamplan.db.models.resource import Resource
from dreamplan.db.models.task import DailyTask
from dreamplan.db.models.user import User

__all__ = [
    "ActivityLog",
    "DailyTask",
    "NotificationPreferences",
    "Plan",
    "Resource",
    "User",
]
