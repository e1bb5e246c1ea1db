"""
ListenerRegistry: storage and lookup for Manager listeners.

Purpose
-------
Maps each event key to its ordered list of `ListenerEntry` objects.

Responsibilities
----------------
- Create a key's list lazily on first registration
- Keep every list ordered by (priority desc, insertion sequence asc)
- Hand out snapshots so a dispatch is unaffected by edits made during it
- Remove entries by handler equality, or drop whole keys
- Provide introspection (counts, all event keys)

Design Decisions
----------------
- **Stable ordering**: entries carry a registry-wide sequence number and the
  list is re-sorted with a stable sort on ``(-priority, sequence)`` after
  each insertion, so equal priorities are always served FIFO.
- **No empty lists**: a key whose last entry is removed is deleted, so
  "absent" and "empty" are the same thing.
- **Copy on read**: `snapshot()` returns a new list. Entries are frozen, so
  the copy is a complete frozen view.

Thread Safety
-------------
Not thread-safe. Hosts that share a Manager across threads must serialise
access to it.
"""

from __future__ import annotations

import itertools
from typing import Any, Optional

from eventmanager.core.event.types import ListenerEntry, ListenerShape


class ListenerRegistry:
    """
    Registry of listeners keyed by event name.

    Examples
    --------
    >>> registry = ListenerRegistry()
    >>> registry.add("user.created", on_created, priority=100, shape=ListenerShape.FUNCTION)
    >>> [entry.handler for entry in registry.snapshot("user.created")]
    [<function on_created ...>]
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[ListenerEntry]] = {}
        self._sequence = itertools.count()

    # ------------------------------------------------------------------ #
    # Modification
    # ------------------------------------------------------------------ #

    def add(
        self,
        event_name: str,
        handler: Any,
        *,
        priority: int,
        shape: ListenerShape,
        method_name: Optional[str] = None,
        identifier: str = "",
    ) -> ListenerEntry:
        """
        Register a handler under `event_name` and return its entry.

        The same handler may be registered more than once; each registration
        is a separate entry and is invoked separately.
        """
        entry = ListenerEntry(
            handler=handler,
            priority=priority,
            sequence=next(self._sequence),
            shape=shape,
            method_name=method_name,
            identifier=identifier,
        )

        listeners = self._listeners.setdefault(event_name, [])
        listeners.append(entry)
        listeners.sort(key=lambda lst: lst.sort_key)
        return entry

    def remove(self, event_name: str, handler: Any) -> int:
        """
        Remove every entry under `event_name` whose handler equals `handler`.

        Remaining entries keep their relative order and priorities.

        Returns
        -------
        int:
            Number of entries removed (0 for an unknown key).
        """
        listeners = self._listeners.get(event_name)
        if listeners is None:
            return 0

        kept = [lst for lst in listeners if lst.handler != handler]
        removed = len(listeners) - len(kept)

        if kept:
            self._listeners[event_name] = kept
        else:
            del self._listeners[event_name]

        return removed

    def clear(self, event_name: Optional[str] = None) -> int:
        """
        Drop one key, or every key when `event_name` is None.

        Returns
        -------
        int:
            Number of entries dropped.
        """
        if event_name is None:
            total = self.get_total_listener_count()
            self._listeners.clear()
            return total

        return len(self._listeners.pop(event_name, []))

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def snapshot(self, event_name: str) -> list[ListenerEntry]:
        """Copy of the entries for `event_name`, highest priority first."""
        return list(self._listeners.get(event_name, ()))

    def has(self, event_name: str) -> bool:
        return bool(self._listeners.get(event_name))

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count_for_event(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, ()))

    def get_total_listener_count(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())

    def get_all_event_keys(self) -> list[str]:
        """
        Return sorted list of all registered event keys.

        Examples
        --------
        >>> registry.get_all_event_keys()
        ['order:paid', 'user', 'user.created']
        """
        return sorted(self._listeners)
