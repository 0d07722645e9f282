"""In-process publication of drained domain events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Iterable

from config.settings import settings
from hsse_audit.models.events import DomainEvent
from hsse_audit.tracing.logger import log_domain_event

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """Routes events to subscribers registered per event class.

    Handlers registered for a base class receive its subclasses too. A
    failing handler is logged and does not stop delivery to the others.
    """

    def __init__(
        self,
        raise_on_handler_error: bool | None = None,
        tracing_enabled: bool | None = None,
    ):
        if raise_on_handler_error is None:
            raise_on_handler_error = settings.raise_on_handler_error
        if tracing_enabled is None:
            tracing_enabled = settings.tracing_enabled
        self.raise_on_handler_error = raise_on_handler_error
        self.tracing_enabled = tracing_enabled
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_cls: type[DomainEvent], handler: EventHandler) -> None:
        self._handlers[event_cls].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        self.subscribe(DomainEvent, handler)

    def unsubscribe(self, event_cls: type[DomainEvent], handler: EventHandler) -> None:
        handlers = self._handlers.get(event_cls, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event: DomainEvent) -> list[EventHandler]:
        matched: list[EventHandler] = []
        for event_cls, handlers in self._handlers.items():
            if isinstance(event, event_cls):
                matched.extend(handlers)
        return matched

    def _deliver(self, event: DomainEvent) -> Exception | None:
        """Call every matching handler; return the first failure, if any."""
        if self.tracing_enabled:
            log_domain_event(event)

        first_error: Exception | None = None
        for handler in self.handlers_for(event):
            try:
                handler(event)
            except Exception as exc:
                logger.exception(
                    "Handler %r failed for %s on %s",
                    handler,
                    event.event_type,
                    event.audit_number,
                )
                if first_error is None:
                    first_error = exc
        return first_error

    def publish(self, event: DomainEvent) -> None:
        """Deliver one event to every matching handler."""
        error = self._deliver(event)
        if error is not None and self.raise_on_handler_error:
            raise error

    def publish_all(self, events: Iterable[DomainEvent]) -> int:
        """Publish events in order.

        Every event is delivered even when a handler fails; with
        ``raise_on_handler_error`` the first failure is raised afterwards.

        Args:
            events: Events drained from an aggregate.

        Returns:
            Number of events published.
        """
        count = 0
        first_error: Exception | None = None
        for event in events:
            error = self._deliver(event)
            if first_error is None:
                first_error = error
            count += 1

        if first_error is not None and self.raise_on_handler_error:
            raise first_error
        return count


_dispatcher: EventDispatcher | None = None


def get_dispatcher() -> EventDispatcher:
    """Return the process-wide dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EventDispatcher()
    return _dispatcher
