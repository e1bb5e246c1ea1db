"""
Core Event Types for the event Manager.

Purpose
-------
Provides the type definitions shared by the registry and the Manager:
the default priority, the recognised handler shapes and the registry entry
that binds a handler to its priority and insertion sequence.

Design Decisions
----------------
- **Shape resolved once**: a handler's shape (function, bound method,
  handler object, other callable) is decided at registration and stored on
  the entry, so dispatch never re-inspects it.
- **Higher priority first**: entries order by ``(-priority, sequence)``;
  `sequence` is a registry-wide counter giving FIFO among equal priorities.
- **Frozen entries with slots**: entries are immutable, so a dispatch
  snapshot (a shallow list copy) cannot be altered by later registry edits.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from eventmanager.core.event.event import Event

# Priority used when a caller omits one, or when priorities are disabled
DEFAULT_PRIORITY = 100

# Method invoked on object handlers registered through subscribe()
HANDLER_METHOD = "handler"

# Listeners are called as listener(event, event.source, event.payload)
ListenerCallable = Callable[["Event", Any, Any], Any]

_NON_HANDLERS = (
    str,
    bytes,
    bytearray,
    int,
    float,
    complex,
    type(None),
    list,
    tuple,
    dict,
    set,
    frozenset,
)


class ListenerShape(Enum):
    """
    Recognised handler shapes.

    Values
    ------
    FUNCTION:
        Plain function, lambda, closure or builtin. Called directly.
    BOUND_METHOD:
        Method bound to an instance. Called directly.
    HANDLER_OBJECT:
        Object dispatched through a named method. The method is fixed at
        registration (``handler`` or the channel's sub-name), or resolved
        from the fired sub-name when registered on a bare type channel.
    CALLABLE:
        Any other callable (callable instance, functools.partial, class).
    """

    FUNCTION = "function"
    BOUND_METHOD = "bound_method"
    HANDLER_OBJECT = "handler_object"
    CALLABLE = "callable"


def resolve_shape(
    handler: Any,
    method_name: Optional[str],
    *,
    dynamic_method: bool = False,
) -> Optional[ListenerShape]:
    """
    Classify a handler, or return None when it cannot be dispatched.

    Parameters
    ----------
    handler:
        The object passed to subscribe()/attach().
    method_name:
        Conventional method name to look for on object handlers, if any.
    dynamic_method:
        True for bare type channels, where any object may register and the
        method name is only known when an event fires.

    Examples
    --------
    >>> resolve_shape(print, HANDLER_METHOD)
    <ListenerShape.FUNCTION: 'function'>
    >>> resolve_shape("not a handler", HANDLER_METHOD) is None
    True
    """
    if isinstance(handler, _NON_HANDLERS):
        return None

    if inspect.isfunction(handler) or inspect.isbuiltin(handler):
        return ListenerShape.FUNCTION

    if inspect.ismethod(handler):
        return ListenerShape.BOUND_METHOD

    if isinstance(handler, type):
        return ListenerShape.CALLABLE

    if method_name is not None and callable(getattr(handler, method_name, None)):
        return ListenerShape.HANDLER_OBJECT

    if dynamic_method:
        return ListenerShape.HANDLER_OBJECT

    if callable(handler):
        return ListenerShape.CALLABLE

    return None


def describe_handler(handler: Any) -> str:
    """Stable, human-readable identifier for logs and errors."""
    target = handler.__func__ if inspect.ismethod(handler) else handler

    qualname = getattr(target, "__qualname__", None)
    if isinstance(qualname, str):
        module = getattr(target, "__module__", None) or "unknown"
        return f"{module}.{qualname}"

    cls = type(handler)
    return f"{cls.__module__}.{cls.__qualname__}"


@dataclass(slots=True, frozen=True)
class ListenerEntry:
    """
    A registered listener.

    Attributes
    ----------
    handler:
        The object exactly as registered; used for equality in detach().
    priority:
        Effective priority (already forced to the default when priorities
        are disabled).
    sequence:
        Registry-wide insertion counter; tie-break among equal priorities.
    shape:
        ListenerShape decided at registration.
    method_name:
        Method to call for HANDLER_OBJECT entries; None means "named after
        the fired sub-name".
    identifier:
        Readable name for logging.
    """

    handler: Any
    priority: int
    sequence: int
    shape: ListenerShape
    method_name: Optional[str] = None
    identifier: str = ""

    @property
    def sort_key(self) -> tuple[int, int]:
        return (-self.priority, self.sequence)

    def resolve(self, sub_name: Optional[str]) -> Optional[ListenerCallable]:
        """
        Return the callable to invoke for an event, or None to skip.

        Only HANDLER_OBJECT entries on bare type channels can resolve to
        None: when the object has no method for the fired sub-name and is
        not itself callable.
        """
        if self.shape is not ListenerShape.HANDLER_OBJECT:
            return self.handler

        name = self.method_name or sub_name
        if name:
            method = getattr(self.handler, name, None)
            if callable(method):
                return method

        if callable(self.handler):
            return self.handler
        return None
