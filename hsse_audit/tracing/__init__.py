"""Tracing and logging for the audit engine."""

from .logger import get_tracer, log_domain_event, setup_tracing

__all__ = [
    "get_tracer",
    "setup_tracing",
    "log_domain_event",
]
