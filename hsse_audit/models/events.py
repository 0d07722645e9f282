"""Domain events recorded by the audit aggregate.

Events are immutable records appended to the aggregate's queue during a call.
The host drains the queue after a successful persist and publishes the events
to notification, audit-log and reporting subscribers.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from hsse_audit.models.enums import (
    AuditScore,
    AuditType,
    FindingSeverity,
    FindingType,
)
from hsse_audit.utils import time_utils


class DomainEvent(BaseModel):
    """Base record for everything the aggregate emits."""

    model_config = ConfigDict(frozen=True)

    event_type: ClassVar[str] = "domain_event"

    audit_id: int | None
    audit_number: str
    occurred_at: datetime = Field(default_factory=time_utils.utc_now)

    def to_payload(self) -> dict:
        """Serialize for downstream publishers."""
        payload = self.model_dump(mode="json")
        payload["event_type"] = self.event_type
        return payload


class AuditCreated(DomainEvent):
    event_type: ClassVar[str] = "audit.created"

    title: str
    audit_type: AuditType


class AuditUpdated(DomainEvent):
    event_type: ClassVar[str] = "audit.updated"

    title: str


class AuditScheduled(DomainEvent):
    event_type: ClassVar[str] = "audit.scheduled"

    title: str
    scheduled_date: datetime


class AuditStarted(DomainEvent):
    event_type: ClassVar[str] = "audit.started"

    title: str
    started_date: datetime


class AuditCompleted(DomainEvent):
    event_type: ClassVar[str] = "audit.completed"

    title: str
    completed_date: datetime
    overall_score: AuditScore | None = None
    score_percentage: Decimal | None = None


class AuditCancelled(DomainEvent):
    event_type: ClassVar[str] = "audit.cancelled"

    title: str
    reason: str


class AuditSubmittedForReview(DomainEvent):
    event_type: ClassVar[str] = "audit.submitted_for_review"

    title: str


class AuditOverdue(DomainEvent):
    event_type: ClassVar[str] = "audit.overdue"

    title: str
    scheduled_date: datetime


class FindingAdded(DomainEvent):
    event_type: ClassVar[str] = "audit.finding_added"

    finding_number: str
    finding_type: FindingType
    severity: FindingSeverity
