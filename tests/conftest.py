"""
Pytest Configuration and Fixtures for eventmanager Tests
========================================================

Purpose
-------
Centralized fixtures shared by the unit tests: a fresh Manager per test, a
call recorder for listeners and a helper to reload Config from a patched
environment.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Generator

import pytest

from eventmanager.core.config import Config
from eventmanager.core.event import Manager


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["EVENTS_ENVIRONMENT"] = "testing"
    os.environ["EVENTS_LOG_LEVEL"] = "DEBUG"
    Config.load()


# ============================================================================
# MANAGER FIXTURES
# ============================================================================


@pytest.fixture
def manager() -> Manager:
    """Manager with explicit settings, independent of the environment."""
    return Manager(
        default_priority=100,
        enable_priorities=True,
        collect_responses=False,
        enable_metrics=True,
    )


class CallRecorder:
    """Records listener invocations in order."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.events: list[Any] = []
        self.payloads: list[Any] = []

    def listener(
        self,
        label: str,
        result: Any = None,
        *,
        stop: bool = False,
    ) -> Callable[[Any, Any, Any], Any]:
        """Build a listener that records `label` and returns `result`."""

        def _listener(event, source, payload):
            self.calls.append(label)
            self.events.append(event)
            self.payloads.append(payload)
            if stop:
                event.stop()
            return result

        _listener.__qualname__ = f"listener_{label}"
        return _listener


@pytest.fixture
def recorder() -> CallRecorder:
    return CallRecorder()


# ============================================================================
# CONFIG FIXTURES
# ============================================================================


@pytest.fixture
def reload_config(monkeypatch) -> Generator[Callable[..., None], None, None]:
    """
    Set environment variables and reload Config; restores both afterwards.

    Usage: ``reload_config(EVENTS_COLLECT_RESPONSES="true")``
    """

    def _reload(**env: str) -> None:
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        Config.load()

    yield _reload

    monkeypatch.undo()
    Config.load()
