"""
eventmanager: in-process, synchronous publish/subscribe with priorities.

```python
from eventmanager import Manager

manager = Manager()
manager.subscribe("user.created", send_welcome, priority=200)
manager.trigger("user.created", source=service, payload={"id": 1})
```
"""

from eventmanager.core.event import (
    DEFAULT_PRIORITY,
    Event,
    EventsAware,
    IllegalCancellation,
    InvalidEventName,
    InvalidHandler,
    InvalidPriority,
    ListenerInvocationFailure,
    Manager,
)
from eventmanager.core.exceptions import EventManagerError

__version__ = "1.0.0"

__all__ = [
    "Manager",
    "Event",
    "EventsAware",
    "DEFAULT_PRIORITY",
    "EventManagerError",
    "InvalidHandler",
    "InvalidPriority",
    "InvalidEventName",
    "IllegalCancellation",
    "ListenerInvocationFailure",
]
