"""
Static configuration for eventmanager.

Purpose
-------
Reads the EVENTS_* environment variables (and a `.env` file, if present)
into class attributes on `Config`. These values seed every new `Manager`
(default priority, priority toggle, response collection, metrics) and the
logging subsystem.

Design Decisions
----------------
- **Class-level singleton**: no instances; `Config.DEFAULT_PRIORITY` etc.
- **Declarative table**: every setting is one `_Setting` row naming its
  attribute, variable, parser and default. `load()` walks the table.
- **Never fails on load**: an unparsable value falls back to its default and
  is written to the load report. `validate()` is the strict check.
- **Reloadable**: `load()` runs on import and may be called again; Managers
  created afterwards see the new values.

Environment Variables
---------------------
- EVENTS_ENVIRONMENT: Environment type (default: development)
- EVENTS_LOG_LEVEL: Logging level (default: INFO)
- EVENTS_LOG_JSON: JSON console output (default: on in production only)
- EVENTS_LOG_COLORS: Colored console output on a tty (default: True)
- EVENTS_LOG_FILE: Write a rotating JSON file log (default: False)
- EVENTS_LOGS_DIR: Directory for the file log (default: ./logs)
- EVENTS_DEFAULT_PRIORITY: Priority given to listeners that omit one (default: 100)
- EVENTS_ENABLE_PRIORITIES: Honour caller priorities (default: True)
- EVENTS_COLLECT_RESPONSES: Collect listener return values (default: False)
- EVENTS_ENABLE_METRICS: Record dispatch metrics (default: True)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, NamedTuple, Optional

from dotenv import load_dotenv

from eventmanager.core.config.errors import ConfigValidationError

load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE = frozenset({"true", "yes", "1", "on"})
_FALSE = frozenset({"false", "no", "0", "off"})


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse an environment name; unknown names mean development.

        Example
        -------
        >>> Environment.from_string("Production") is Environment.PRODUCTION
        True
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            logging.warning("Unknown environment %r, assuming development", value)
            return cls.DEVELOPMENT


def _parse_int(raw: str) -> int:
    return int(raw.strip())


def _parse_bool(raw: str) -> bool:
    normalized = raw.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ValueError(f"expected one of {sorted(_TRUE | _FALSE)}")


def _parse_str(raw: str) -> str:
    return raw


def _parse_path(raw: str) -> Path:
    return Path(raw).expanduser()


class _Setting(NamedTuple):
    attr: str
    env: str
    parse: Callable[[str], Any]
    default: Callable[[], Any]


_SETTINGS = (
    _Setting("ENVIRONMENT", "EVENTS_ENVIRONMENT", _parse_str, lambda: "development"),
    _Setting("LOG_LEVEL", "EVENTS_LOG_LEVEL", _parse_str, lambda: "INFO"),
    _Setting("LOG_JSON", "EVENTS_LOG_JSON", _parse_bool, lambda: None),
    _Setting("LOG_COLORS", "EVENTS_LOG_COLORS", _parse_bool, lambda: True),
    _Setting("LOG_FILE", "EVENTS_LOG_FILE", _parse_bool, lambda: False),
    _Setting("LOGS_DIR", "EVENTS_LOGS_DIR", _parse_path, lambda: Path.cwd() / "logs"),
    _Setting("DEFAULT_PRIORITY", "EVENTS_DEFAULT_PRIORITY", _parse_int, lambda: 100),
    _Setting("ENABLE_PRIORITIES", "EVENTS_ENABLE_PRIORITIES", _parse_bool, lambda: True),
    _Setting("COLLECT_RESPONSES", "EVENTS_COLLECT_RESPONSES", _parse_bool, lambda: False),
    _Setting("ENABLE_METRICS", "EVENTS_ENABLE_METRICS", _parse_bool, lambda: True),
)


class ConfigLoadReport:
    """
    Where each setting came from on the last `Config.load()`.

    Attributes
    ----------
    from_environment:
        Variables that were set and parsed.
    defaulted:
        Variables that were unset or rejected, with the default used.
    rejected:
        Variables whose value could not be parsed, with the reason.
    loaded_at:
        ISO timestamp of the load.
    """

    def __init__(self) -> None:
        self.from_environment: set[str] = set()
        self.defaulted: Dict[str, Any] = {}
        self.rejected: Dict[str, str] = {}
        self.loaded_at: Optional[str] = None

    def get_summary(self) -> Dict[str, Any]:
        return {
            "loaded_at": self.loaded_at,
            "from_environment": sorted(self.from_environment),
            "defaulted": sorted(self.defaulted),
            "rejected": dict(self.rejected),
        }


class Config:
    """
    Centralized static configuration for eventmanager.

    Usage
    -----
    >>> Config.DEFAULT_PRIORITY
    100
    >>> Config.load()          # re-read the environment
    >>> Config.validate()      # raise on values with no safe fallback
    """

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_FILE: bool = False
    LOGS_DIR: Path = Path.cwd() / "logs"

    DEFAULT_PRIORITY: int = 100
    ENABLE_PRIORITIES: bool = True
    COLLECT_RESPONSES: bool = False
    ENABLE_METRICS: bool = True

    _report: ConfigLoadReport = ConfigLoadReport()

    @classmethod
    def load(cls) -> None:
        """
        Load every setting from the environment.

        Example
        -------
        >>> os.environ["EVENTS_COLLECT_RESPONSES"] = "true"
        >>> Config.load()
        >>> Config.COLLECT_RESPONSES
        True
        """
        report = ConfigLoadReport()

        for setting in _SETTINGS:
            setattr(cls, setting.attr, cls._read(setting, report))

        report.loaded_at = datetime.now(timezone.utc).isoformat()
        cls._report = report

    @staticmethod
    def _read(setting: _Setting, report: ConfigLoadReport) -> Any:
        raw = os.getenv(setting.env)

        if raw is not None:
            try:
                value = setting.parse(raw)
            except ValueError as exc:
                report.rejected[setting.env] = f"{raw!r}: {exc}"
                logging.warning(
                    "%s=%r is invalid (%s); using the default", setting.env, raw, exc
                )
            else:
                report.from_environment.add(setting.env)
                return value

        default = setting.default()
        report.defaulted[setting.env] = default
        return default

    @classmethod
    def validate(cls) -> None:
        """
        Strict checks for values that have no safe fallback.

        Raises
        ------
        ConfigValidationError:
            If the log level is not a standard logging level name.
        """
        if str(cls.LOG_LEVEL).upper() not in LOG_LEVELS:
            raise ConfigValidationError(
                f"Invalid EVENTS_LOG_LEVEL {cls.LOG_LEVEL!r}, "
                f"expected one of {', '.join(LOG_LEVELS)}"
            )

    @classmethod
    def environment(cls) -> Environment:
        return Environment.from_string(cls.ENVIRONMENT)

    @classmethod
    def is_production(cls) -> bool:
        return cls.environment() is Environment.PRODUCTION

    @classmethod
    def is_testing(cls) -> bool:
        return cls.environment() is Environment.TESTING

    @classmethod
    def get_load_report(cls) -> ConfigLoadReport:
        """Report of the most recent `load()`."""
        return cls._report

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """
        Current values keyed by lower-cased setting name.

        Example
        -------
        >>> Config.get_config_summary()["default_priority"]
        100
        """
        return {
            setting.attr.lower(): (
                str(getattr(cls, setting.attr))
                if setting.attr == "LOGS_DIR"
                else getattr(cls, setting.attr)
            )
            for setting in _SETTINGS
        }


Config.load()
