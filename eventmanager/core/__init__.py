"""
Core layer for eventmanager.

Subsystems
----------
- config: static configuration from the environment (Config)
- logging: structured logging, logger factory, log context
- exceptions: EventManagerError base and severity helpers
- event: Manager, Event, EventsAware and their errors
"""

from eventmanager.core.config import Config
from eventmanager.core.exceptions import (
    ErrorSeverity,
    EventManagerError,
    get_error_severity,
    should_alert,
)
from eventmanager.core.logging import get_logger

__all__ = [
    "Config",
    "ErrorSeverity",
    "EventManagerError",
    "get_error_severity",
    "should_alert",
    "get_logger",
]
