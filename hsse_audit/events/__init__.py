"""Domain event publication."""

from hsse_audit.events.dispatcher import EventDispatcher, EventHandler, get_dispatcher

__all__ = [
    "EventDispatcher",
    "EventHandler",
    "get_dispatcher",
]
