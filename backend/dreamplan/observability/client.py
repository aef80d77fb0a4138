"""Lazily created, process-wide Opik client."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from opik import Opik

from dreamplan.core.config import settings

logger = logging.getLogger(__name__)

_lock = Lock()
_client: Optional[Opik] = None
_resolved = False


def init_opik() -> Optional[Opik]:
    """Resolve the client from settings once; later calls return the cached result."""
    global _client, _resolved

    with _lock:
        if not _resolved:
            _client = _build_client()
            _resolved = True
        return _client


def get_opik_client() -> Optional[Opik]:
    if _resolved:
        return _client
    return init_opik()


def reset_opik() -> None:
    """Drop the cached client so the next lookup re-reads settings."""
    global _client, _resolved

    with _lock:
        _client = None
        _resolved = False


def _build_client() -> Optional[Opik]:
    if not settings.opik_enabled:
        logger.debug("Opik tracing disabled")
        return None
    if not settings.opik_api_key:
        logger.warning("OPIK_ENABLED is set without OPIK_API_KEY; tracing stays off")
        return None
    try:
        client = Opik(project_name=settings.opik_project, api_key=settings.opik_api_key)
    except Exception as exc:  # pragma: no cover - the SDK raises assorted errors on bad config
        logger.warning("Opik client could not be created, tracing stays off: %s", exc)
        return None
    logger.info("Opik tracing enabled for project %s", settings.opik_project)
    return client
