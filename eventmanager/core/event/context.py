"""
Dispatch log context for the event Manager.

Wraps each dispatch in a `LogContext` so every record emitted while
listeners run (including records from the listeners themselves) carries the
event name and a per-dispatch id. Nested dispatches inherit the outer
correlation id and restore the outer context on exit.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from eventmanager.core.logging.logger import LogContext


def new_dispatch_id() -> str:
    return uuid.uuid4().hex[:12]


def event_log_context(event_name: str, dispatch_id: str) -> LogContext:
    """
    Build the LogContext for one dispatch.

    Examples
    --------
    >>> with event_log_context("user:created", new_dispatch_id()):
    ...     logger.info("dispatching")  # record carries event_name/dispatch_id
    """
    return LogContext(
        event_name=event_name,
        dispatch_id=dispatch_id,
        operation="dispatch",
    )


def payload_keys(payload: Any) -> list[str]:
    """Keys of a mapping payload for logging; values are never logged."""
    if isinstance(payload, Mapping):
        return [str(key) for key in payload.keys()]
    return []
