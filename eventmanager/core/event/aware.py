"""
EventsAware: mixin for objects that raise events through a Manager.

A host holds an optional Manager reference and forwards `trigger()` and
`fire()` to it. Without a Manager both calls return None and nothing is
dispatched; the check happens here, in the host, not in the Manager.
"""

from __future__ import annotations

from typing import Any, Optional

from eventmanager.core.event.manager import Manager


class EventsAware:
    """
    Examples
    --------
    >>> class OrderService(EventsAware):
    ...     def pay(self, order):
    ...         self.trigger("order.paid", self, order)
    >>> service = OrderService()
    >>> service.pay(order)                 # no manager: no-op
    >>> service.set_events_manager(Manager())
    >>> service.pay(order)                 # dispatched
    """

    _events_manager: Optional[Manager] = None

    @property
    def events_manager(self) -> Optional[Manager]:
        return self._events_manager

    @events_manager.setter
    def events_manager(self, manager: Optional[Manager]) -> None:
        self._events_manager = manager

    def get_events_manager(self) -> Optional[Manager]:
        return self._events_manager

    def set_events_manager(self, manager: Optional[Manager]) -> None:
        self._events_manager = manager

    def trigger(
        self,
        event_name: str,
        source: Any = None,
        payload: Any = None,
    ) -> Any:
        manager = self._events_manager
        if manager is None:
            return None
        return manager.trigger(event_name, source, payload)

    def fire(
        self,
        event_type: str,
        source: Any = None,
        payload: Any = None,
    ) -> Any:
        manager = self._events_manager
        if manager is None:
            return None
        return manager.fire(event_type, source, payload)
