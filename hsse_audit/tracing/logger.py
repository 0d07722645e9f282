"""Tracing and logging for audit domain events."""

from __future__ import annotations

import logging
import sys
from typing import Any

from hsse_audit.models.events import DomainEvent


class EventTracer:
    """Logs published domain events and keeps an in-memory trail."""

    def __init__(self, name: str = "hsse_audit.events"):
        self.logger = logging.getLogger(name)
        self._setup_handler()
        self.events: list[dict[str, Any]] = []

    def _setup_handler(self) -> None:
        """Setup console handler with formatting."""
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter(
                "[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
                datefmt="%H:%M:%S",
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def log(self, event: DomainEvent) -> None:
        """Record a domain event.

        Args:
            event: The event being published.
        """
        payload = event.to_payload()
        self.events.append(payload)

        ref = event.audit_number if event.audit_id is None else f"{event.audit_number}#{event.audit_id}"
        self.logger.info("[%s] %s", ref, event.event_type)
        self.logger.debug("event payload: %s", payload)

    def get_events(self, audit_number: str | None = None) -> list[dict[str, Any]]:
        """Get traced events, optionally filtered by audit number."""
        if audit_number:
            return [e for e in self.events if e["audit_number"] == audit_number]
        return self.events.copy()

    def clear(self) -> None:
        """Clear the in-memory trail."""
        self.events.clear()


# Global tracer instance
_tracer: EventTracer | None = None


def setup_tracing(log_level: str = "INFO") -> EventTracer:
    """Setup global tracing.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).

    Returns:
        The configured EventTracer instance.
    """
    global _tracer
    _tracer = EventTracer()
    _tracer.logger.setLevel(getattr(logging, log_level.upper()))
    return _tracer


def get_tracer() -> EventTracer:
    """Get the global tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = EventTracer()
    return _tracer


def log_domain_event(event: DomainEvent) -> None:
    """Trace an event using the global tracer."""
    get_tracer().log(event)
