"""Persistence helpers for the audit engine."""

from hsse_audit.persistence.audit_store import AuditStore, ensure_schema
from hsse_audit.persistence.models import AuditRecord, Base

__all__ = [
    "AuditStore",
    "AuditRecord",
    "Base",
    "ensure_schema",
]
