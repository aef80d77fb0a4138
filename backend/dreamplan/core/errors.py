"""Service-level exceptions translated to HTTP responses by the routes."""
from __future__ import annotations


class DreamPlanError(Exception):
    """Base class for errors raised by DreamPlan services."""


class ConfigurationError(DreamPlanError):
    """A required secret or setting is missing.

    Messages name the setting, never its value.
    """


class UpstreamServiceError(DreamPlanError):
    """A third-party call (LLM gateway, video search) failed or returned junk."""

    def __init__(self, message: str, *, service: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code
