"""
EventRouter: event-key resolution for the Manager.

Purpose
-------
Turns the identifier passed to `trigger()` / `fire()` / `attach()` into
the registry keys a dispatch must visit, validating it on the way.

Supported Forms
---------------
- Simple:      "user.created"  -> keys ["user.created"]
- Namespaced:  "user:created"  -> keys ["user", "user:created"]
               (type channel first, then the full key)

Notes
-----
- The namespaced form splits on the first ':'; "db:query:slow" has type
  "db" and sub-name "query:slow".
- Matching is exact and case-sensitive; there are no wildcards.
- Stateless; safe to share.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from eventmanager.core.event.errors import InvalidEventName

SEPARATOR = ":"


@dataclass(frozen=True, slots=True)
class EventKey:
    """
    A validated event identifier.

    Attributes
    ----------
    name:
        The full identifier, used as the Event name.
    type:
        Type segment for namespaced keys, else None.
    sub_name:
        Name segment for namespaced keys, else None. Object handlers on
        namespaced channels are dispatched through a method of this name.
    """

    name: str
    type: Optional[str] = None
    sub_name: Optional[str] = None

    @property
    def is_namespaced(self) -> bool:
        return self.type is not None

    @property
    def dispatch_keys(self) -> list[str]:
        """Registry keys in the order they are dispatched."""
        if self.type is None:
            return [self.name]
        return [self.type, self.name]


class EventRouter:
    """
    Parses and validates event identifiers.

    Examples
    --------
    >>> router = EventRouter()
    >>> router.parse_simple("user.created").dispatch_keys
    ['user.created']
    >>> router.parse_namespaced("user:created").dispatch_keys
    ['user', 'user:created']
    >>> router.parse_channel("user").sub_name is None
    True
    """

    @staticmethod
    def _require_name(event_name: Any) -> str:
        if not isinstance(event_name, str):
            raise InvalidEventName(event_name, "event name must be a string")
        if not event_name:
            raise InvalidEventName(event_name, "event name cannot be empty")
        return event_name

    def parse_simple(self, event_name: Any) -> EventKey:
        """Validate a `trigger()`/`subscribe()` name: any non-empty string."""
        return EventKey(name=self._require_name(event_name))

    def parse_namespaced(self, event_type: Any) -> EventKey:
        """
        Validate a `fire()` identifier of the form ``<type>:<name>``.

        Raises
        ------
        InvalidEventName:
            If the separator is missing or either segment is empty.
        """
        event_type = self._require_name(event_type)

        type_, sep, sub_name = event_type.partition(SEPARATOR)
        if not sep:
            raise InvalidEventName(
                event_type, f"expected '<type>{SEPARATOR}<name>'"
            )
        if not type_:
            raise InvalidEventName(event_type, "event type segment is empty")
        if not sub_name:
            raise InvalidEventName(event_type, "event name segment is empty")

        return EventKey(name=event_type, type=type_, sub_name=sub_name)

    def parse_channel(self, event_type: Any) -> EventKey:
        """
        Validate an `attach()` channel: a bare type or a full namespaced key.
        """
        event_type = self._require_name(event_type)
        if SEPARATOR in event_type:
            return self.parse_namespaced(event_type)
        return EventKey(name=event_type)
