"""Domain models for the HSSE audit lifecycle engine."""

from hsse_audit.models.enums import (
    AttachmentType,
    AuditCategory,
    AuditItemStatus,
    AuditItemType,
    AuditPriority,
    AuditScore,
    AuditStatus,
    AuditType,
    FindingSeverity,
    FindingStatus,
    FindingType,
    RiskLevel,
)
from hsse_audit.models.errors import (
    AuditEngineError,
    ConcurrencyConflict,
    IllegalStateTransition,
    InvariantViolation,
)
from hsse_audit.models.events import (
    AuditCancelled,
    AuditCompleted,
    AuditCreated,
    AuditOverdue,
    AuditScheduled,
    AuditStarted,
    AuditSubmittedForReview,
    AuditUpdated,
    DomainEvent,
    FindingAdded,
)
from hsse_audit.models.attachment import (
    AuditAttachment,
    AuditComment,
    FindingAttachment,
)
from hsse_audit.models.audit_item import AuditItem
from hsse_audit.models.finding import AuditFinding
from hsse_audit.models.audit import Audit

__all__ = [
    # Enumerations
    "AttachmentType",
    "AuditCategory",
    "AuditItemStatus",
    "AuditItemType",
    "AuditPriority",
    "AuditScore",
    "AuditStatus",
    "AuditType",
    "FindingSeverity",
    "FindingStatus",
    "FindingType",
    "RiskLevel",
    # Errors
    "AuditEngineError",
    "ConcurrencyConflict",
    "IllegalStateTransition",
    "InvariantViolation",
    # Events
    "DomainEvent",
    "AuditCreated",
    "AuditUpdated",
    "AuditScheduled",
    "AuditStarted",
    "AuditCompleted",
    "AuditCancelled",
    "AuditSubmittedForReview",
    "AuditOverdue",
    "FindingAdded",
    # Entities
    "Audit",
    "AuditItem",
    "AuditFinding",
    "AuditAttachment",
    "AuditComment",
    "FindingAttachment",
]
