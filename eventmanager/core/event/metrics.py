"""
EventMetrics and EventMetricsRecorder for the event Manager.

Purpose
-------
Counts dispatches, early stops and listener failures per event key, and
tracks the number of registered listeners. `EventMetrics` is an immutable
snapshot; all mutation goes through `EventMetricsRecorder`.

Not thread-safe, like the Manager that owns it.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class EventMetrics:
    """
    Immutable snapshot of Manager metrics.

    Examples
    --------
    >>> metrics = EventMetrics(
    ...     events_dispatched={"user.created": 40},
    ...     listener_errors={"user.created": 1},
    ...     total_listeners=3,
    ... )
    >>> metrics.get_summary()["error_rate"]
    2.5
    """

    events_dispatched: dict[str, int] = field(default_factory=dict)
    events_stopped: dict[str, int] = field(default_factory=dict)
    listener_errors: dict[str, int] = field(default_factory=dict)
    total_listeners: int = 0

    def get_summary(self) -> dict[str, Any]:
        """
        Generate a formatted summary of metrics.

        Returns
        -------
        dict[str, Any]:
            total_events_dispatched, events_by_name, total_stopped,
            total_errors, errors_by_event, total_listeners and error_rate
            (percentage of dispatches that ended in a listener failure).
        """
        total_events = sum(self.events_dispatched.values())
        total_errors = sum(self.listener_errors.values())

        error_rate = (total_errors / max(1, total_events)) * 100.0

        return {
            "total_events_dispatched": total_events,
            "events_by_name": dict(self.events_dispatched),
            "total_stopped": sum(self.events_stopped.values()),
            "total_errors": total_errors,
            "errors_by_event": dict(self.listener_errors),
            "total_listeners": self.total_listeners,
            "error_rate": round(error_rate, 2),
        }


class EventMetricsRecorder:
    """
    Mutable metrics recorder for the Manager.

    Examples
    --------
    >>> recorder = EventMetricsRecorder()
    >>> recorder.record_dispatch("user.created")
    >>> recorder.adjust_listener_count(2)
    >>> recorder.snapshot().total_listeners
    2
    """

    def __init__(self) -> None:
        self._events_dispatched: defaultdict[str, int] = defaultdict(int)
        self._events_stopped: defaultdict[str, int] = defaultdict(int)
        self._listener_errors: defaultdict[str, int] = defaultdict(int)
        self._total_listeners: int = 0

    def record_dispatch(self, event_name: str) -> None:
        self._events_dispatched[event_name] += 1

    def record_stop(self, event_name: str) -> None:
        self._events_stopped[event_name] += 1

    def record_error(self, event_name: str) -> None:
        self._listener_errors[event_name] += 1

    @property
    def total_listeners(self) -> int:
        return self._total_listeners

    def adjust_listener_count(self, delta: int) -> None:
        """Adjust the listener count by `delta`, clamped at 0."""
        self._total_listeners = max(0, self._total_listeners + delta)

    def reset_listener_count(self) -> None:
        self._total_listeners = 0

    def snapshot(self) -> EventMetrics:
        """Return an immutable copy of the current counters."""
        return EventMetrics(
            events_dispatched=dict(self._events_dispatched),
            events_stopped=dict(self._events_stopped),
            listener_errors=dict(self._listener_errors),
            total_listeners=self._total_listeners,
        )
