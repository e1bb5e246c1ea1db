"""
Manager: synchronous, priority-ordered event dispatch.

Purpose
-------
Provides the Manager class: components register listeners for named events
with an integer priority, and the Manager invokes them in priority order
when an event is triggered, honouring in-band cancellation and optionally
collecting listener return values.

Responsibilities
----------------
- Register/unregister listeners on simple ("user.created") and namespaced
  ("user", "user:created") channels
- Resolve handler shapes once at registration
- Dispatch an Event to a snapshot of the matching listeners, highest
  priority first, FIFO among equal priorities
- Stop after any listener that stops a cancelable event
- Return the last invoked listener's return value; optionally keep every
  return value in a response buffer
- Metrics collection, structured logging and introspection

Design Decisions
----------------
- **Synchronous**: `trigger()`/`fire()` return only after every eligible
  listener has returned. No scheduling, no background work.
- **Snapshots**: each dispatch copies the listener lists before invoking
  anything, so listeners may subscribe/detach (including themselves) or
  dispatch further events without disturbing the running iteration.
- **Fail fast**: the first listener that raises aborts the dispatch; the
  error is logged, counted and re-raised as `ListenerInvocationFailure`.
- **Config-driven defaults**: default priority, priority toggle, response
  collection and metrics come from `Config` unless overridden per instance.

Thread Safety
-------------
Re-entrant but not thread-safe. Hosts calling a Manager from several threads
must serialise access to it.

Dependencies
------------
- eventmanager.core.logging.logger (structured logging)
- eventmanager.core.config.config (Config defaults)
- eventmanager.core.event.registry (ListenerRegistry)
- eventmanager.core.event.router (EventRouter)
- eventmanager.core.event.metrics (EventMetricsRecorder, EventMetrics)
- eventmanager.core.event.context (dispatch log context)
"""

from __future__ import annotations

from typing import Any, Optional

from eventmanager.core.config.config import Config
from eventmanager.core.event.context import (
    event_log_context,
    new_dispatch_id,
    payload_keys,
)
from eventmanager.core.event.errors import (
    InvalidHandler,
    InvalidPriority,
    ListenerInvocationFailure,
    handle_listener_error,
)
from eventmanager.core.event.event import Event
from eventmanager.core.event.metrics import EventMetrics, EventMetricsRecorder
from eventmanager.core.event.registry import ListenerRegistry
from eventmanager.core.event.router import EventKey, EventRouter
from eventmanager.core.event.types import (
    HANDLER_METHOD,
    ListenerEntry,
    ListenerShape,
    describe_handler,
    resolve_shape,
)
from eventmanager.core.logging.logger import get_logger

logger = get_logger(__name__)


class Manager:
    """
    In-process event manager.

    Examples
    --------
    >>> manager = Manager()
    >>> manager.subscribe("user.created", send_welcome, priority=200)
    >>> manager.subscribe("user.created", audit)
    >>> manager.trigger("user.created", source=service, payload={"id": 1})

    >>> manager.attach("user", UserEvents())      # calls UserEvents().created
    >>> manager.fire("user:created", service, {"id": 1})
    """

    def __init__(
        self,
        registry: Optional[ListenerRegistry] = None,
        router: Optional[EventRouter] = None,
        metrics: Optional[EventMetricsRecorder] = None,
        *,
        default_priority: Optional[int] = None,
        enable_priorities: Optional[bool] = None,
        collect_responses: Optional[bool] = None,
        enable_metrics: Optional[bool] = None,
    ) -> None:
        """
        Initialize Manager.

        Parameters
        ----------
        registry:
            Optional ListenerRegistry instance. Creates default if None.
        router:
            Optional EventRouter instance. Creates default if None.
        metrics:
            Optional EventMetricsRecorder. Creates default if None.
        default_priority:
            Priority for listeners registered without one. Uses
            Config.DEFAULT_PRIORITY if None.
        enable_priorities:
            Honour caller priorities. When False every listener gets the
            default priority and dispatch is pure subscription order.
            Uses Config.ENABLE_PRIORITIES if None.
        collect_responses:
            Keep every listener return value for `get_responses()`.
            Uses Config.COLLECT_RESPONSES if None.
        enable_metrics:
            Record dispatch metrics. Uses Config.ENABLE_METRICS if None.
        """
        self._registry = registry or ListenerRegistry()
        self._router = router or EventRouter()
        self._metrics = metrics or EventMetricsRecorder()

        self._default_priority = self._load_setting(
            default_priority, Config.DEFAULT_PRIORITY
        )
        if isinstance(self._default_priority, bool) or not isinstance(
            self._default_priority, int
        ):
            raise InvalidPriority("<default>", self._default_priority)

        self._priorities_enabled = bool(
            self._load_setting(enable_priorities, Config.ENABLE_PRIORITIES)
        )
        self._collect_responses = bool(
            self._load_setting(collect_responses, Config.COLLECT_RESPONSES)
        )
        self._metrics_enabled = bool(
            self._load_setting(enable_metrics, Config.ENABLE_METRICS)
        )

        self._responses: list[Any] = []

        logger.debug(
            "Manager initialized",
            extra={
                "default_priority": self._default_priority,
                "priorities_enabled": self._priorities_enabled,
                "collect_responses": self._collect_responses,
                "metrics_enabled": self._metrics_enabled,
            },
        )

    @staticmethod
    def _load_setting(override: Any, configured: Any) -> Any:
        """Resolve a setting: explicit override first, then Config."""
        return configured if override is None else override

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        handler: Any,
        priority: Optional[int] = None,
    ) -> None:
        """
        Subscribe a handler to a simple event name.

        Parameters
        ----------
        event_name:
            Exact name passed to `trigger()`, e.g. "user.created".
        handler:
            A function, bound method or other callable taking
            ``(event, source, payload)``, or an object whose ``handler``
            method takes those arguments.
        priority:
            Higher values are served first. Defaults to the Manager's
            default priority.

        Raises
        ------
        InvalidEventName:
            If `event_name` is empty or not a string.
        InvalidHandler:
            If `handler` has none of the accepted shapes.
        InvalidPriority:
            If `priority` is not an int.
        """
        key = self._router.parse_simple(event_name)
        shape = resolve_shape(handler, HANDLER_METHOD)
        if shape is None:
            raise InvalidHandler(
                key.name,
                handler,
                f"expected a callable or an object with a callable "
                f"'{HANDLER_METHOD}' method",
            )

        self._register(key.name, handler, priority, shape, HANDLER_METHOD)

    def attach(
        self,
        event_type: str,
        handler: Any,
        priority: Optional[int] = None,
    ) -> None:
        """
        Attach a handler to a namespaced channel.

        `event_type` is either a bare type ("user"), which receives every
        ``user:*`` event passed to `fire()`, or a full key ("user:created").
        Object handlers are called through the method named after the fired
        event's sub-name (``created``); on a bare type channel an object
        without that method is skipped for that event unless it is itself
        callable.

        Raises
        ------
        InvalidEventName:
            If `event_type` is empty or has an empty segment.
        InvalidHandler:
            If `handler` has none of the accepted shapes.
        InvalidPriority:
            If `priority` is not an int.
        """
        key = self._router.parse_channel(event_type)

        if key.is_namespaced:
            shape = resolve_shape(handler, key.sub_name)
            reason = (
                f"expected a callable or an object with a callable "
                f"'{key.sub_name}' method"
            )
        else:
            shape = resolve_shape(handler, None, dynamic_method=True)
            reason = "expected a callable or an object exposing event methods"

        if shape is None:
            raise InvalidHandler(key.name, handler, reason)

        self._register(key.name, handler, priority, shape, key.sub_name)

    def _register(
        self,
        event_name: str,
        handler: Any,
        priority: Optional[int],
        shape: ListenerShape,
        method_name: Optional[str],
    ) -> ListenerEntry:
        if priority is None:
            priority = self._default_priority
        elif isinstance(priority, bool) or not isinstance(priority, int):
            raise InvalidPriority(event_name, priority)

        if not self._priorities_enabled:
            priority = self._default_priority

        entry = self._registry.add(
            event_name,
            handler,
            priority=priority,
            shape=shape,
            method_name=method_name,
            identifier=describe_handler(handler),
        )

        if self._metrics_enabled:
            self._metrics.adjust_listener_count(1)

        logger.debug(
            "Manager: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": entry.identifier,
                "priority": entry.priority,
                "shape": entry.shape.value,
            },
        )
        return entry

    def detach(self, event_name: str, handler: Any) -> bool:
        """
        Remove every registration of `handler` under `event_name`.

        Handlers match by equality, so a fresh ``obj.method`` matches an
        earlier registration of the same bound method. Unknown names are a
        no-op.

        Returns
        -------
        bool:
            True if at least one listener was removed.
        """
        removed = self._registry.remove(event_name, handler)

        if removed and self._metrics_enabled:
            self._metrics.adjust_listener_count(-removed)

        if removed:
            logger.debug(
                "Manager: detached listener",
                extra={
                    "event_name": event_name,
                    "listener_id": describe_handler(handler),
                    "removed": removed,
                },
            )

        return bool(removed)

    def detach_all(self, event_name: Optional[str] = None) -> None:
        """
        Remove all listeners of one event, or of every event when
        `event_name` is None.
        """
        removed = self._registry.clear(event_name)

        if self._metrics_enabled:
            if event_name is None:
                self._metrics.reset_listener_count()
            else:
                self._metrics.adjust_listener_count(-removed)

        logger.debug(
            "Manager: detached all listeners",
            extra={"event_name": event_name or "*", "removed": removed},
        )

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def trigger(
        self,
        event_name: str,
        source: Any = None,
        payload: Any = None,
        cancelable: bool = True,
    ) -> Any:
        """
        Dispatch an event to the listeners of `event_name`.

        Returns
        -------
        Any:
            The last invoked listener's return value, or None when nothing
            was invoked.

        Raises
        ------
        InvalidEventName:
            If `event_name` is empty or not a string.
        ListenerInvocationFailure:
            If a listener raises. Remaining listeners are skipped.

        Examples
        --------
        >>> manager.trigger("order.paid", source=checkout, payload={"id": 7})
        """
        key = self._router.parse_simple(event_name)
        return self._dispatch(key, source, payload, cancelable)

    def fire(
        self,
        event_type: str,
        source: Any = None,
        payload: Any = None,
        cancelable: bool = True,
    ) -> Any:
        """
        Dispatch a namespaced ``<type>:<name>`` event.

        Listeners on the bare ``<type>`` channel run first, then listeners
        on the full key. Both phases share one Event; stopping it in the
        first phase skips the second.

        Returns
        -------
        Any:
            The last invoked listener's return value, or None when nothing
            was invoked.

        Raises
        ------
        InvalidEventName:
            If the separator is missing or a segment is empty.
        ListenerInvocationFailure:
            If a listener raises. Remaining listeners are skipped.
        """
        key = self._router.parse_namespaced(event_type)
        return self._dispatch(key, source, payload, cancelable)

    def _dispatch(
        self,
        key: EventKey,
        source: Any,
        payload: Any,
        cancelable: bool,
    ) -> Any:
        collecting = self._collect_responses
        responses: list[Any] = []
        if collecting:
            self._responses = responses

        # Freeze every phase before any listener can touch the registry.
        phases: list[tuple[str, list[ListenerEntry]]] = []
        for channel in key.dispatch_keys:
            listeners = self._registry.snapshot(channel)
            if listeners:
                phases.append((channel, listeners))

        if not phases:
            logger.debug(
                "Manager: no listeners for event",
                extra={"event_name": key.name},
            )
            return None

        event = Event(key.name, source, payload, cancelable)
        status: Any = None

        if self._metrics_enabled:
            self._metrics.record_dispatch(key.name)

        with event_log_context(key.name, new_dispatch_id()):
            logger.debug(
                "Manager: dispatching event",
                extra={
                    "event_name": key.name,
                    "channels": [channel for channel, _ in phases],
                    "listener_count": sum(len(lst) for _, lst in phases),
                    "payload_keys": payload_keys(payload),
                    "cancelable": event.is_cancelable(),
                },
            )

            try:
                for channel, listeners in phases:
                    status = self._run_listeners(
                        event,
                        key.name,
                        channel,
                        listeners,
                        key.sub_name,
                        responses if collecting else None,
                        status,
                    )
                    if event.is_cancelable() and event.is_stopped():
                        break
            finally:
                if collecting:
                    # A nested dispatch may have swapped in its own buffer.
                    self._responses = responses

        return status

    def _run_listeners(
        self,
        event: Event,
        event_name: str,
        channel: str,
        listeners: list[ListenerEntry],
        sub_name: Optional[str],
        responses: Optional[list[Any]],
        status: Any,
    ) -> Any:
        for listener in listeners:
            target = listener.resolve(sub_name)
            if target is None:
                logger.debug(
                    "Manager: listener has no method for event, skipped",
                    extra={
                        "event_name": event_name,
                        "channel": channel,
                        "listener_id": listener.identifier,
                        "method": sub_name,
                    },
                )
                continue

            try:
                status = target(event, event.source, event.payload)
            except ListenerInvocationFailure:
                # Already logged and counted by the nested dispatch
                raise
            except Exception as exc:
                handle_listener_error(
                    logger=logger,
                    event_name=event_name,
                    listener=listener,
                    exc=exc,
                    metrics=self._metrics if self._metrics_enabled else None,
                )
                raise ListenerInvocationFailure(
                    event_name, listener.identifier, exc
                ) from exc

            if responses is not None:
                responses.append(status)

            if event.is_cancelable() and event.is_stopped():
                if self._metrics_enabled:
                    self._metrics.record_stop(event_name)
                logger.debug(
                    "Manager: event stopped",
                    extra={
                        "event_name": event_name,
                        "channel": channel,
                        "listener_id": listener.identifier,
                    },
                )
                break

        return status

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def has_listeners(self, event_name: str) -> bool:
        """True if at least one listener is registered under `event_name`."""
        return self._registry.has(event_name)

    def get_listeners(self, event_name: str) -> list[Any]:
        """
        Handlers registered under `event_name`, in dispatch order.

        Examples
        --------
        >>> manager.subscribe("a", low, priority=1)
        >>> manager.subscribe("a", high, priority=9)
        >>> manager.get_listeners("a")
        [high, low]
        """
        return [entry.handler for entry in self._registry.snapshot(event_name)]

    def get_responses(self) -> list[Any]:
        """
        Return values collected by the most recent collecting dispatch.

        Empty until a dispatch runs with response collection enabled. After
        a listener failure it holds the values returned before the failure.
        """
        return list(self._responses)

    def get_event_names(self) -> list[str]:
        """Sorted list of event keys that currently have listeners."""
        return self._registry.get_all_event_keys()

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        """Listener count for one event key, or overall when None."""
        if event_name is not None:
            return self._registry.get_listener_count_for_event(event_name)
        return self._registry.get_total_listener_count()

    # ------------------------------------------------------------------ #
    # Configuration Toggles
    # ------------------------------------------------------------------ #

    @property
    def priorities_enabled(self) -> bool:
        return self._priorities_enabled

    @property
    def collecting_responses(self) -> bool:
        return self._collect_responses

    @property
    def default_priority(self) -> int:
        return self._default_priority

    def enable_priorities(self, enabled: bool = True) -> None:
        """
        Toggle priority handling for future registrations.

        Existing registrations keep the priority they were stored with.
        """
        self._priorities_enabled = bool(enabled)
        logger.debug(
            "Manager: priorities toggled",
            extra={"priorities_enabled": self._priorities_enabled},
        )

    def collect_responses(self, collect: bool = True) -> None:
        """Toggle collection of listener return values."""
        self._collect_responses = bool(collect)
        logger.debug(
            "Manager: response collection toggled",
            extra={"collect_responses": self._collect_responses},
        )

    # ------------------------------------------------------------------ #
    # Metrics
    # ------------------------------------------------------------------ #

    def get_metrics(self) -> Optional[EventMetrics]:
        """Immutable metrics snapshot, or None when metrics are disabled."""
        if not self._metrics_enabled:
            return None
        return self._metrics.snapshot()

    def get_metrics_summary(self) -> dict[str, Any]:
        metrics = self.get_metrics()
        if metrics is None:
            return {}
        return metrics.get_summary()
