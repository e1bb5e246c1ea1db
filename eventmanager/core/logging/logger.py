"""
eventmanager Logging Subsystem

Purpose
-------
Structured logging for the Manager and for the listeners it runs:

- Every record emitted during a dispatch carries the event name, a
  per-dispatch id and a correlation id shared by nested dispatches.
- Records are handed to a bounded queue on the emitting thread and written
  by a background QueueListener, so a slow sink never stalls a dispatch.
- Console output is JSON in production and human-readable (optionally
  coloured) elsewhere; an optional daily JSON file can be added.

Responsibilities
----------------
- `setup_logging()` / `shutdown_logging()`: install and remove the queue
  pipeline on the root logger. Importing the package never does this.
- `LogContext` / `set_log_context()` / `clear_log_context()`: manage the
  ContextVar that `ContextFilter` copies onto records.
- `get_logging_health()`: queue depth and drop counters.

Dependencies
------------
- eventmanager.core.config.config.Config
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional

from eventmanager.core.config.config import Config


_log_context: ContextVar[Dict[str, Any]] = ContextVar(
    "eventmanager_log_context",
    default={},
)

# Record attributes that every LogRecord has; anything else came from `extra`
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime"}

_NOT_SET = "N/A"


# ============================================================================
# Configuration
# ============================================================================


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """
    Resolved logging settings.

    Built from `Config` by `from_config()` when `setup_logging()` runs, so a
    `Config.load()` before setup is picked up.
    """

    level: int = logging.INFO
    environment: str = "development"
    use_json: bool = False
    use_colors: bool = False
    use_file: bool = False
    logs_dir: Path = Path("logs")

    CONSOLE_FORMAT: ClassVar[str] = (
        "%(asctime)s | %(levelname)-8s | %(event_name)-20s | %(name)s | %(message)s"
    )
    DATE_FORMAT: ClassVar[str] = "%Y-%m-%d %H:%M:%S"
    FILE_NAME: ClassVar[str] = "eventmanager.json.log"
    FILE_BACKUPS: ClassVar[int] = 7
    QUEUE_MAX_SIZE: ClassVar[int] = 10_000

    @classmethod
    def from_config(cls) -> "LoggerConfig":
        environment = str(Config.ENVIRONMENT).lower()
        production = environment == "production"

        level = logging.getLevelName(str(Config.LOG_LEVEL).upper())
        if not isinstance(level, int):
            level = logging.INFO

        use_json = production if Config.LOG_JSON is None else bool(Config.LOG_JSON)
        use_colors = (
            not use_json
            and not production
            and bool(Config.LOG_COLORS)
            and sys.stdout.isatty()
        )

        return cls(
            level=level,
            environment=environment,
            use_json=use_json,
            use_colors=use_colors,
            use_file=bool(Config.LOG_FILE),
            logs_dir=Path(Config.LOGS_DIR).resolve(),
        )


# ============================================================================
# Health
# ============================================================================


@dataclass(slots=True)
class LoggingMetrics:
    records_enqueued: int = 0
    records_dropped: int = 0
    listener_errors: int = 0


@dataclass(frozen=True, slots=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


@dataclass(slots=True)
class _LoggingRuntime:
    """Everything `setup_logging()` installs, so shutdown can undo it."""

    metrics: LoggingMetrics = field(default_factory=LoggingMetrics)
    log_queue: Optional["queue.Queue[logging.LogRecord]"] = None
    listener: Optional[QueueListener] = None
    handler: Optional[logging.Handler] = None

    @property
    def initialized(self) -> bool:
        return self.listener is not None


_runtime = _LoggingRuntime()


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """
    Copy the active log context onto the record.

    Must run on the emitting thread; the queue listener thread has its own
    (empty) context.
    """

    FIELDS: ClassVar[tuple[str, ...]] = (
        "event_name",
        "dispatch_id",
        "correlation_id",
        "operation",
    )

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get()

        for name in self.FIELDS:
            # Values passed via extra= survive unless the context sets them
            if name in context or not hasattr(record, name):
                setattr(record, name, context.get(name, _NOT_SET))
        # Top-level package of the logger unless the context names one
        record.component = context.get("component") or record.name.partition(".")[0]

        for key, value in context.items():
            if not hasattr(record, key):
                setattr(record, key, value)

        return True


class ColoredFormatter(logging.Formatter):
    """Human-readable format with the level name coloured for terminals."""

    RESET: ClassVar[str] = "\033[0m"
    LEVEL_COLORS: ClassVar[Dict[int, str]] = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[94m",
        logging.WARNING: "\033[93m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[1;91m",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)

        tinted = logging.makeLogRecord(record.__dict__)
        tinted.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(tinted)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Context fields are emitted at the top level when set; values passed via
    ``extra=`` are grouped under ``"extra"``. Values json cannot encode are
    written as their repr.
    """

    CONTEXT_FIELDS: ClassVar[tuple[str, ...]] = ContextFilter.FIELDS + ("component",)

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for name in self.CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None and value != _NOT_SET:
                data[name] = value

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            data["exception"] = record.exc_text

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS
            and key not in self.CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            data["extra"] = extra

        return json.dumps(data, ensure_ascii=False, default=repr)


# ============================================================================
# Queue Pipeline
# ============================================================================


class EventsQueueHandler(QueueHandler):
    """Non-blocking enqueue; a full queue drops the record and counts it."""

    def __init__(
        self, log_queue: "queue.Queue[logging.LogRecord]", metrics: LoggingMetrics
    ) -> None:
        super().__init__(log_queue)
        self._metrics = metrics

    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self._metrics.records_dropped += 1
            sys.stderr.write("eventmanager: logging queue full, record dropped\n")
        else:
            self._metrics.records_enqueued += 1


class EventsQueueListener(QueueListener):
    def __init__(
        self,
        log_queue: "queue.Queue[logging.LogRecord]",
        *handlers: logging.Handler,
        metrics: LoggingMetrics,
    ) -> None:
        super().__init__(log_queue, *handlers, respect_handler_level=True)
        self._metrics = metrics

    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        self._metrics.listener_errors += 1
        sys.stderr.write("eventmanager: log handler failed while writing a record\n")


def _console_handler(config: LoggerConfig) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(config.level)

    if config.use_json:
        formatter: logging.Formatter = JSONFormatter()
    elif config.use_colors:
        formatter = ColoredFormatter(config.CONSOLE_FORMAT, config.DATE_FORMAT)
    else:
        formatter = logging.Formatter(config.CONSOLE_FORMAT, config.DATE_FORMAT)

    handler.setFormatter(formatter)
    return handler


def _file_handler(config: LoggerConfig) -> logging.Handler:
    config.logs_dir.mkdir(parents=True, exist_ok=True)

    handler = TimedRotatingFileHandler(
        filename=str(config.logs_dir / config.FILE_NAME),
        when="midnight",
        backupCount=config.FILE_BACKUPS,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(config.level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(config: Optional[LoggerConfig] = None) -> None:
    """
    Route the root logger through the queue pipeline. Idempotent.

    Parameters
    ----------
    config:
        Settings to use. Resolved from `Config` when None.
    """
    global _runtime

    if _runtime.initialized:
        return

    config = config or LoggerConfig.from_config()
    runtime = _LoggingRuntime()

    sinks = [_console_handler(config)]
    if config.use_file:
        sinks.append(_file_handler(config))

    runtime.log_queue = queue.Queue(config.QUEUE_MAX_SIZE)
    runtime.listener = EventsQueueListener(
        runtime.log_queue, *sinks, metrics=runtime.metrics
    )

    runtime.handler = EventsQueueHandler(runtime.log_queue, runtime.metrics)
    runtime.handler.setLevel(config.level)
    runtime.handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(config.level)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(runtime.handler)

    runtime.listener.start()
    _runtime = runtime

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": config.environment,
            "log_level": logging.getLevelName(config.level),
            "json": config.use_json,
            "colors": config.use_colors,
            "file": config.use_file,
        },
    )


def shutdown_logging() -> None:
    """Flush the queue, stop the listener and detach the queue handler."""
    global _runtime

    if not _runtime.initialized:
        return

    logging.getLogger(__name__).info("Logging shutting down")

    runtime = _runtime
    _runtime = _LoggingRuntime()

    try:
        runtime.listener.stop()
    finally:
        root = logging.getLogger()
        if runtime.handler is not None:
            root.removeHandler(runtime.handler)
            runtime.handler.close()
        for sink in runtime.listener.handlers:
            sink.flush()
            sink.close()


def get_logging_health() -> LoggingHealth:
    log_queue = _runtime.log_queue
    return LoggingHealth(
        initialized=_runtime.initialized,
        queue_size=log_queue.qsize() if log_queue is not None else 0,
        queue_max_size=log_queue.maxsize if log_queue is not None else 0,
        records_enqueued=_runtime.metrics.records_enqueued,
        records_dropped=_runtime.metrics.records_dropped,
        listener_errors=_runtime.metrics.listener_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def current_log_context() -> Dict[str, Any]:
    """Return a copy of the active log context."""
    return dict(_log_context.get())


def _new_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


class LogContext:
    """
    Scoped log context.

    Fields given as keyword arguments (None values are ignored) are layered
    over the enclosing context and the enclosing context is restored on
    exit. The correlation id is inherited when not given, so records from a
    nested dispatch share the outer dispatch's id.

    Examples
    --------
    >>> with LogContext(event_name="user:created", dispatch_id="3f2a"):
    ...     logger.info("dispatching")
    """

    def __init__(self, correlation_id: Optional[str] = None, **fields: Any) -> None:
        inherited = _log_context.get()

        self.context: Dict[str, Any] = dict(inherited)
        self.context.update(
            (key, value) for key, value in fields.items() if value is not None
        )
        self.context["correlation_id"] = (
            correlation_id
            or inherited.get("correlation_id")
            or _new_correlation_id()
        )

        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def set_log_context(**fields: Any) -> None:
    """Merge fields into the current context without a scope (None ignored)."""
    current = dict(_log_context.get())
    current.update((key, value) for key, value in fields.items() if value is not None)
    _log_context.set(current)


def clear_log_context() -> None:
    _log_context.set({})
