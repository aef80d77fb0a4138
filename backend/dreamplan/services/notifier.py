"""Delivery providers for task reminders."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Callable, Dict
from uuid import UUID

from dreamplan.core.config import settings

logger = logging.getLogger(__name__)

STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class ReminderNotice:
    user_id: UUID
    message: str
    open_tasks: int
    tone: str


@dataclass(frozen=True)
class DeliveryResult:
    status: str
    reason: str = ""

    @property
    def skipped(self) -> bool:
        return self.status == STATUS_SKIPPED

    def as_payload(self) -> Dict[str, str]:
        return asdict(self)


class Notifier:
    """Base class for reminder providers."""

    name = "base"

    def deliver(self, notice: ReminderNotice) -> DeliveryResult:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Writes reminders to the application log instead of sending them."""

    name = "noop"

    def deliver(self, notice: ReminderNotice) -> DeliveryResult:
        logger.info(
            "Task reminder (noop) user=%s open_tasks=%s tone=%s message=%r",
            notice.user_id,
            notice.open_tasks,
            notice.tone,
            notice.message,
        )
        return DeliveryResult(status="logged", reason="notification provider is noop")


PROVIDERS: Dict[str, Callable[[], Notifier]] = {LogNotifier.name: LogNotifier}


@lru_cache
def get_notifier() -> Notifier:
    provider = settings.notifications_provider.lower()
    factory = PROVIDERS.get(provider)
    if factory is None:
        logger.warning("Unknown notification provider %r; reminders will only be logged", provider)
        factory = LogNotifier
    return factory()
