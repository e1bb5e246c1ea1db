"""
Event value object passed through one dispatch.

An Event is created by the Manager for a single `trigger`/`fire` call and
handed by reference to each listener in turn. Listeners may rewrite the
payload or name, or stop the event; later listeners of the same dispatch see
those edits. Events are never shared across dispatch calls.
"""

from __future__ import annotations

from typing import Any

from eventmanager.core.event.errors import IllegalCancellation


class Event:
    """
    One occurrence of a named event.

    Examples
    --------
    >>> event = Event("order:paid", source=cart, payload={"total": 10})
    >>> if event.is_cancelable():
    ...     event.stop()
    >>> event.is_stopped()
    True
    """

    __slots__ = ("_name", "_source", "_payload", "_cancelable", "_stopped")

    def __init__(
        self,
        name: str,
        source: Any = None,
        payload: Any = None,
        cancelable: bool = True,
    ) -> None:
        self._name = name
        self._source = source
        self._payload = payload
        self._cancelable = bool(cancelable)
        self._stopped = False

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value

    @property
    def source(self) -> Any:
        return self._source

    @property
    def payload(self) -> Any:
        return self._payload

    @payload.setter
    def payload(self, value: Any) -> None:
        self._payload = value

    @property
    def cancelable(self) -> bool:
        return self._cancelable

    @property
    def stopped(self) -> bool:
        return self._stopped

    def get_name(self) -> str:
        return self._name

    def set_name(self, name: str) -> "Event":
        self._name = name
        return self

    def get_source(self) -> Any:
        return self._source

    def get_payload(self) -> Any:
        return self._payload

    def set_payload(self, payload: Any = None) -> "Event":
        self._payload = payload
        return self

    def is_cancelable(self) -> bool:
        return self._cancelable

    def is_stopped(self) -> bool:
        return self._stopped

    def stop(self) -> "Event":
        """
        Stop propagation to the remaining listeners.

        The Manager checks the flag after each listener returns; this call
        does not interrupt the listener that makes it.

        Raises
        ------
        IllegalCancellation:
            If the event was created with ``cancelable=False``.
        """
        if not self._cancelable:
            raise IllegalCancellation(self._name)

        self._stopped = True
        return self

    def __repr__(self) -> str:
        return (
            f"Event(name={self._name!r}, source={self._source!r}, "
            f"payload={self._payload!r}, cancelable={self._cancelable!r}, "
            f"stopped={self._stopped!r})"
        )
