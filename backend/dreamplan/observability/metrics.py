"""Metrics recorded as one-off Opik traces named ``metric:<name>``."""
from __future__ import annotations

from typing import Any, Dict, Optional

from dreamplan.observability.tracing import trace

METRIC_PREFIX = "metric:"


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    payload: Dict[str, Any] = {**(metadata or {}), "value": value}
    with trace(f"{METRIC_PREFIX}{name}", metadata=payload):
        pass
