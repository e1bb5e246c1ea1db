"""
Base exceptions for eventmanager.

Purpose
-------
Define the structured exception base shared by every error the package
raises: registration failures, dispatch-entry validation failures, illegal
cancellation and wrapped listener failures.

Design Notes
------------
- All package exceptions inherit from `EventManagerError` and carry a
  message, a details dict, an `ErrorSeverity` and a stable error code.
- Subclasses set `DEFAULT_SEVERITY`; caller mistakes are WARNING and
  listener failures are ERROR. Hosts route ERROR and above to alerting via
  `should_alert()`.
- Nothing in this package retries; there is no retry hint.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Severity levels, ordered from least to most severe."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def at_least(self, other: "ErrorSeverity") -> bool:
        return self.rank >= other.rank


_SEVERITY_ORDER = tuple(ErrorSeverity)

# Severity from which `should_alert()` answers True
ALERT_THRESHOLD = ErrorSeverity.ERROR


class EventManagerError(Exception):
    """
    Base exception for all eventmanager errors.

    Parameters
    ----------
    message:
        Human-readable description.
    details:
        Structured context for logs (event name, listener id, ...).
    severity:
        Overrides the class `DEFAULT_SEVERITY`.
    error_code:
        Stable identifier; defaults to the class name.

    Example
    -------
    >>> raise EventManagerError("Dispatch failed", {"event_name": "user:created"})
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.severity = severity or self.DEFAULT_SEVERITY
        self.error_code = error_code or type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for structured logs."""
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "details": dict(self.details),
        }

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.error_code}] {self.message}"
        context = ", ".join(f"{key}={value!r}" for key, value in self.details.items())
        return f"[{self.error_code}] {self.message} ({context})"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, "
            f"error_code={self.error_code!r}, severity={self.severity.value!r})"
        )


def get_error_severity(exc: BaseException) -> ErrorSeverity:
    """Severity of `exc`; exceptions from outside the package count as ERROR."""
    if isinstance(exc, EventManagerError):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: BaseException) -> bool:
    """True if `exc` is at or above the alerting threshold."""
    return get_error_severity(exc).at_least(ALERT_THRESHOLD)
