"""
Event system for eventmanager.

Purpose
-------
Synchronous, priority-ordered publish/subscribe: the `Manager` registry and
dispatcher, the `Event` value passed to listeners, the `EventsAware`
forwarding mixin and the error types raised along the way.
"""

from .aware import EventsAware
from .errors import (
    IllegalCancellation,
    InvalidEventName,
    InvalidHandler,
    InvalidPriority,
    ListenerInvocationFailure,
)
from .event import Event
from .manager import Manager
from .metrics import EventMetrics, EventMetricsRecorder
from .registry import ListenerRegistry
from .router import EventKey, EventRouter
from .types import DEFAULT_PRIORITY, ListenerEntry, ListenerShape

__all__ = [
    "Manager",
    "Event",
    "EventsAware",
    "DEFAULT_PRIORITY",
    "ListenerEntry",
    "ListenerShape",
    "ListenerRegistry",
    "EventKey",
    "EventRouter",
    "EventMetrics",
    "EventMetricsRecorder",
    "InvalidHandler",
    "InvalidPriority",
    "InvalidEventName",
    "IllegalCancellation",
    "ListenerInvocationFailure",
]
