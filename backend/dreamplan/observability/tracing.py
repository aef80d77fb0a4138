"""Opik traces around units of work."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from dreamplan.core.logging import get_request_id
from dreamplan.observability import client as opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def trace_metadata(
    metadata: Optional[Dict[str, Any]],
    user_id: Optional[str],
    request_id: Optional[str],
) -> Dict[str, Any]:
    """Merge caller metadata with the user and request ids (explicit keys win)."""
    merged = dict(metadata or {})
    if user_id:
        merged.setdefault("user_id", str(user_id))
    request_id = request_id or get_request_id()
    if request_id:
        merged.setdefault("request_id", request_id)
    return merged


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Record the enclosed block as an Opik trace.

    Yields ``None`` when tracing is off. The request id defaults to the one
    bound by the HTTP middleware. Errors are attached to the trace and re-raised.
    """
    span = _start(name, trace_metadata(metadata, user_id, request_id))
    try:
        yield span
    except Exception as exc:
        _safe_update(span, name, error_info={"message": str(exc)})
        raise
    finally:
        if span:
            try:
                span.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s", name, exc_info=True)


def annotate(span: Optional["Trace"], metadata: Dict[str, Any]) -> None:
    """Replace the metadata of an open trace; no-op when tracing is off."""
    _safe_update(span, "annotate", metadata=metadata)


def _start(name: str, metadata: Dict[str, Any]) -> Optional["Trace"]:
    client = opik_client.get_opik_client()
    if not client:
        return None
    try:
        return client.trace(name=name, metadata=metadata or None)
    except Exception as exc:  # pragma: no cover - a tracing outage must not fail the request
        logger.debug("Unable to start Opik trace %s: %s", name, exc)
        return None


def _safe_update(span: Optional["Trace"], name: str, **fields: Any) -> None:
    if not span:
        return
    try:
        span.update(**fields)
    except Exception:  # pragma: no cover
        logger.debug("Failed to update Opik trace %s", name, exc_info=True)
