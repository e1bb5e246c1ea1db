"""
Error types and listener-failure handling for the event Manager.

Purpose
-------
Defines the errors raised by registration, dispatch-entry validation and
cancellation, plus the centralized helper that logs and counts a failing
listener before the Manager re-raises it as `ListenerInvocationFailure`.

Propagation
-----------
- `InvalidHandler`, `InvalidPriority`, `InvalidEventName`: raised straight
  to the caller of subscribe/attach/trigger/fire.
- `IllegalCancellation`: raised by `Event.stop()` on a non-cancelable event.
  Inside a listener it is a listener failure like any other.
- `ListenerInvocationFailure`: wraps whatever a listener raised, chained via
  `raise ... from exc`. The rest of the dispatch is abandoned; there is no
  isolation between listeners and no retry.
"""

from __future__ import annotations

from logging import Logger
from typing import Any, Optional

from eventmanager.core.exceptions import ErrorSeverity, EventManagerError
from eventmanager.core.event.metrics import EventMetricsRecorder
from eventmanager.core.event.types import ListenerEntry


class InvalidHandler(EventManagerError):
    """Raised when a handler is neither callable nor exposes the expected method."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, event_name: str, handler: Any, reason: str) -> None:
        self.event_name = event_name
        self.handler = handler
        super().__init__(
            f"Invalid handler for event '{event_name}': {reason}",
            details={
                "event_name": event_name,
                "handler_type": type(handler).__name__,
            },
            error_code="INVALID_HANDLER",
        )


class InvalidPriority(EventManagerError):
    """Raised when a listener priority is not an integer."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, event_name: str, priority: Any) -> None:
        self.event_name = event_name
        self.priority = priority
        super().__init__(
            f"Priority for event '{event_name}' must be an int, "
            f"got {type(priority).__name__}",
            details={"event_name": event_name, "priority": repr(priority)},
            error_code="INVALID_PRIORITY",
        )


class InvalidEventName(EventManagerError):
    """Raised for empty or malformed event identifiers."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, event_name: Any, reason: str) -> None:
        self.event_name = event_name
        super().__init__(
            f"Invalid event name {event_name!r}: {reason}",
            details={"event_name": event_name},
            error_code="INVALID_EVENT_NAME",
        )


class IllegalCancellation(EventManagerError):
    """Raised when stop() is called on an event that is not cancelable."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, event_name: str) -> None:
        self.event_name = event_name
        super().__init__(
            f"Trying to cancel a non-cancelable event '{event_name}'",
            details={"event_name": event_name},
            error_code="ILLEGAL_CANCELLATION",
        )


class ListenerInvocationFailure(EventManagerError):
    """
    Raised when a listener raises during dispatch.

    The listener's own exception is available as `original_error` and as
    `__cause__`.
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR

    def __init__(
        self, event_name: str, listener_id: str, original_error: BaseException
    ) -> None:
        self.event_name = event_name
        self.listener_id = listener_id
        self.original_error = original_error
        super().__init__(
            f"Listener '{listener_id}' failed during '{event_name}': "
            f"{original_error}",
            details={
                "event_name": event_name,
                "listener_id": listener_id,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="LISTENER_FAILURE",
        )


def handle_listener_error(
    *,
    logger: Logger,
    event_name: str,
    listener: ListenerEntry,
    exc: Exception,
    metrics: Optional[EventMetricsRecorder],
) -> None:
    """
    Log listener execution error and update metrics.

    Never raises. The caller decides what happens to the dispatch; the
    Manager re-raises as `ListenerInvocationFailure`.

    Examples
    --------
    >>> try:
    ...     listener.invoke(event, sub_name)
    ... except Exception as exc:
    ...     handle_listener_error(
    ...         logger=logger,
    ...         event_name="user:created",
    ...         listener=listener,
    ...         exc=exc,
    ...         metrics=metrics_recorder,
    ...     )
    ...     raise ListenerInvocationFailure(...) from exc
    """
    if metrics is not None:
        metrics.record_error(event_name)

    logger.error(
        "Manager: listener error",
        extra={
            "event_name": event_name,
            "listener_id": listener.identifier,
            "priority": listener.priority,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=True,
    )
