"""Errors raised by the audit lifecycle engine."""

from __future__ import annotations

from enum import Enum


class AuditEngineError(Exception):
    """Base class for deterministic domain failures.

    Retrying the same call without changing state fails the same way.
    """


class IllegalStateTransition(AuditEngineError):
    """An operation was invoked in a state that does not permit it.

    The message always names the operation and the current state; a custom
    message is appended after them.
    """

    def __init__(self, operation: str, current_state: Enum | str, message: str | None = None):
        self.operation = operation
        self.current_state = current_state
        self.reason = message
        state = current_state.value if isinstance(current_state, Enum) else current_state
        if message:
            detail = f"{operation} in state {state}: {message}"
        else:
            detail = f"'{operation}' is not allowed in state '{state}'"
        super().__init__(detail)

    def to_dict(self) -> dict[str, str]:
        state = self.current_state
        return {
            "error": "illegal_state_transition",
            "operation": self.operation,
            "current_state": state.value if isinstance(state, Enum) else str(state),
            "message": str(self),
        }


class InvariantViolation(AuditEngineError):
    """An attempt to mutate a locked aggregate or break a structural rule."""


class ConcurrencyConflict(AuditEngineError):
    """The stored audit changed after this copy was loaded.

    Reload the audit and re-apply the command against the fresh copy.
    """

    def __init__(self, audit_number: str, expected_version: int, stored_version: int | None):
        self.audit_number = audit_number
        self.expected_version = expected_version
        self.stored_version = stored_version
        super().__init__(
            f"Audit {audit_number} was modified concurrently "
            f"(loaded version {expected_version}, stored version {stored_version})"
        )
