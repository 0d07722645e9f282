"""Audit aggregate root and its lifecycle state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from hsse_audit import numbering, scoring
from hsse_audit.models.attachment import AuditAttachment, AuditComment
from hsse_audit.models.audit_item import AuditItem
from hsse_audit.models.base import DomainEntity
from hsse_audit.models.enums import (
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
from hsse_audit.models.errors import IllegalStateTransition, InvariantViolation
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
from hsse_audit.models.finding import AuditFinding
from hsse_audit.utils import time_utils

# Item and finding collections are frozen in these states.
LOCKED_STATUSES = (AuditStatus.COMPLETED, AuditStatus.ARCHIVED)
# OVERDUE is an advisory marker on a scheduled audit.
SCHEDULED_STATUSES = (AuditStatus.SCHEDULED, AuditStatus.OVERDUE)
EDITABLE_STATUSES = (AuditStatus.DRAFT,) + SCHEDULED_STATUSES


@dataclass(frozen=True, eq=False)
class Audit(DomainEntity):
    """A scheduled compliance audit and everything recorded during it.

    The audit owns its checklist items, findings, attachments and comments.
    Status moves along::

        DRAFT -> SCHEDULED -> IN_PROGRESS -> COMPLETED | CANCELLED -> ARCHIVED
                              IN_PROGRESS -> UNDER_REVIEW
                 SCHEDULED -> OVERDUE (advisory)

    Every operation checks its precondition before touching any field, so a
    rejected call leaves the audit unchanged. Domain events are queued on the
    instance and drained by the host after a successful persist.
    """

    audit_number: str
    title: str
    description: str
    audit_type: AuditType
    category: AuditCategory
    priority: AuditPriority
    scheduled_date: datetime
    auditor_id: int
    id: int | None = None
    # Stored version this copy was loaded at; 0 until first persisted.
    version: int = 0
    status: AuditStatus = AuditStatus.DRAFT

    started_date: datetime | None = None
    completed_date: datetime | None = None
    location_id: int | None = None
    department_id: int | None = None
    facility_id: int | None = None

    # Assessment results
    summary: str | None = None
    recommendations: str | None = None
    overall_score: AuditScore | None = None
    score_percentage: Decimal | None = None
    total_possible_points: int | None = None
    achieved_points: int | None = None
    estimated_duration_minutes: int | None = None
    actual_duration_minutes: int | None = None

    # Compliance and standards
    standards_applied: str | None = None
    is_regulatory: bool = False
    regulatory_reference: str | None = None

    # Inspections run the same lifecycle without scoring.
    scoring_enabled: bool = True

    created_at: datetime = field(default_factory=time_utils.utc_now)
    created_by: str = ""
    modified_at: datetime | None = None

    _items: list[AuditItem] = field(default_factory=list, repr=False)
    _findings: list[AuditFinding] = field(default_factory=list, repr=False)
    _attachments: list[AuditAttachment] = field(default_factory=list, repr=False)
    _comments: list[AuditComment] = field(default_factory=list, repr=False)
    _events: list[DomainEvent] = field(default_factory=list, repr=False)

    @classmethod
    def create(
        cls,
        title: str,
        description: str,
        audit_type: AuditType,
        category: AuditCategory,
        priority: AuditPriority,
        scheduled_date: datetime,
        auditor_id: int,
        location_id: int | None = None,
        department_id: int | None = None,
        facility_id: int | None = None,
        estimated_duration_minutes: int | None = None,
        created_by: str = "",
        scoring_enabled: bool = True,
        audit_id: int | None = None,
    ) -> "Audit":
        """Create a draft audit with a generated number and low risk."""
        _check_duration(estimated_duration_minutes)
        audit = cls(
            id=audit_id,
            audit_number=numbering.generate_audit_number(audit_type),
            title=title,
            description=description,
            audit_type=audit_type,
            category=category,
            priority=priority,
            scheduled_date=time_utils.ensure_utc(scheduled_date),
            auditor_id=auditor_id,
            location_id=location_id,
            department_id=department_id,
            facility_id=facility_id,
            estimated_duration_minutes=estimated_duration_minutes,
            created_by=created_by,
            scoring_enabled=scoring_enabled,
        )
        audit._record(AuditCreated, title=audit.title, audit_type=audit.audit_type)
        return audit

    # ------------------------------------------------------------------
    # Descriptive updates

    def update_basic_info(
        self,
        title: str,
        description: str,
        priority: AuditPriority,
        scheduled_date: datetime,
        location_id: int | None = None,
        department_id: int | None = None,
        facility_id: int | None = None,
        estimated_duration_minutes: int | None = None,
    ) -> None:
        if not self.can_edit:
            raise IllegalStateTransition(
                "update_basic_info", self.status, "Only draft or scheduled audits can be edited"
            )
        _check_duration(estimated_duration_minutes)
        self._apply(
            title=title,
            description=description,
            priority=priority,
            scheduled_date=time_utils.ensure_utc(scheduled_date),
            location_id=location_id,
            department_id=department_id,
            facility_id=facility_id,
            estimated_duration_minutes=estimated_duration_minutes,
        )
        self._record(AuditUpdated, title=self.title)

    def set_compliance_info(
        self,
        standards_applied: str | None,
        is_regulatory: bool = False,
        regulatory_reference: str | None = None,
    ) -> None:
        self._apply(
            standards_applied=standards_applied,
            is_regulatory=is_regulatory,
            regulatory_reference=regulatory_reference,
        )

    def set_estimated_duration(self, minutes: int | None) -> None:
        _check_duration(minutes)
        self._apply(estimated_duration_minutes=minutes)

    def assign_id(self, audit_id: int) -> None:
        """Bind the persistent id once; child item numbers are re-derived from it."""
        if self.id is not None:
            if self.id == audit_id:
                return
            raise InvariantViolation(f"Audit {self.audit_number} already has id {self.id}")

        renumbered: dict[str, str] = {}
        for item in self._items:
            old_number = item.item_number
            item._rebind(audit_id)
            renumbered[old_number] = item.item_number
        for finding in self._findings:
            finding._rebind(audit_id, renumbered)
        for attachment in self._attachments:
            if attachment.audit_item_number in renumbered:
                attachment.audit_item_number = renumbered[attachment.audit_item_number]
        for comment in self._comments:
            if comment.audit_item_number in renumbered:
                comment.audit_item_number = renumbered[comment.audit_item_number]
        self._apply(_touch=False, id=audit_id)

    def mark_persisted(self, audit_id: int, version: int) -> None:
        """Record that the store committed this copy.

        Args:
            audit_id: Id of the stored row.
            version: Stored version written by the commit.
        """
        self.assign_id(audit_id)
        self._apply(_touch=False, version=version)

    # ------------------------------------------------------------------
    # Lifecycle transitions

    def schedule(self, scheduled_date: datetime) -> None:
        """Move a draft audit to ``SCHEDULED``.

        Args:
            scheduled_date: When the audit is due; naive values are taken as UTC.

        Raises:
            IllegalStateTransition: If the audit is not a draft.
        """
        if self.status != AuditStatus.DRAFT:
            raise IllegalStateTransition(
                "schedule", self.status, "Only draft audits can be scheduled"
            )
        self._apply(status=AuditStatus.SCHEDULED, scheduled_date=time_utils.ensure_utc(scheduled_date))
        self._record(AuditScheduled, title=self.title, scheduled_date=self.scheduled_date)

    def start_audit(self) -> None:
        """Begin fieldwork on a scheduled (or overdue) audit.

        Raises:
            IllegalStateTransition: If the audit is not scheduled.
        """
        if not self.can_start:
            raise IllegalStateTransition(
                "start_audit", self.status, "Only scheduled audits can be started"
            )
        self._apply(status=AuditStatus.IN_PROGRESS, started_date=time_utils.utc_now())
        self._record(AuditStarted, title=self.title, started_date=self.started_date)

    def submit_for_review(self) -> None:
        """Hand an in-progress audit over for review."""
        if self.status != AuditStatus.IN_PROGRESS:
            raise IllegalStateTransition(
                "submit_for_review",
                self.status,
                "Only in-progress audits can be submitted for review",
            )
        self._apply(status=AuditStatus.UNDER_REVIEW)
        self._record(AuditSubmittedForReview, title=self.title)

    def complete_audit(
        self, summary: str | None = None, recommendations: str | None = None
    ) -> None:
        """Complete the audit and fix its final score from item results.

        Args:
            summary: Closing summary for the report.
            recommendations: Follow-up recommendations.

        Raises:
            IllegalStateTransition: If the audit is not in progress.
        """
        if not self.can_complete:
            raise IllegalStateTransition(
                "complete_audit", self.status, "Only in-progress audits can be completed"
            )
        completed_date = time_utils.utc_now()
        changes: dict[str, Any] = {
            "status": AuditStatus.COMPLETED,
            "completed_date": completed_date,
            "summary": summary,
            "recommendations": recommendations,
        }
        if self.started_date is not None:
            elapsed = completed_date - self.started_date
            changes["actual_duration_minutes"] = int(elapsed.total_seconds() // 60)

        result = self.calculate_score()
        if result is not None:
            changes.update(
                overall_score=result.band,
                score_percentage=result.percentage,
                total_possible_points=result.total_possible_points,
                achieved_points=result.achieved_points,
            )
        self._apply(**changes)
        self._record(
            AuditCompleted,
            title=self.title,
            completed_date=completed_date,
            overall_score=self.overall_score,
            score_percentage=self.score_percentage,
        )

    def cancel(self, reason: str) -> None:
        """Cancel an audit that is not yet completed or archived.

        Args:
            reason: Why the audit was called off; carried on the event.
        """
        if not self.can_cancel:
            raise IllegalStateTransition(
                "cancel", self.status, "Cannot cancel completed or archived audit"
            )
        self._apply(status=AuditStatus.CANCELLED)
        self._record(AuditCancelled, title=self.title, reason=reason)

    def archive(self) -> None:
        """Archive a completed or cancelled audit. No event is recorded."""
        if not self.can_archive:
            raise IllegalStateTransition(
                "archive", self.status, "Only completed or cancelled audits can be archived"
            )
        self._apply(status=AuditStatus.ARCHIVED)

    def mark_overdue(self) -> bool:
        """Flag a scheduled audit whose date has passed.

        Returns:
            True if the audit was marked; False, with no change, when the
            scheduled date is still ahead.

        Raises:
            IllegalStateTransition: If the audit is not ``SCHEDULED``.
        """
        if self.status != AuditStatus.SCHEDULED:
            raise IllegalStateTransition(
                "mark_overdue", self.status, "Only scheduled audits can become overdue"
            )
        if self.scheduled_date >= time_utils.utc_now():
            return False
        self._apply(status=AuditStatus.OVERDUE)
        self._record(AuditOverdue, title=self.title, scheduled_date=self.scheduled_date)
        return True

    # ------------------------------------------------------------------
    # Children

    def _ensure_unlocked(self, operation: str) -> None:
        if self.status in LOCKED_STATUSES:
            raise InvariantViolation(
                f"Cannot {operation} on {self.status.value} audit {self.audit_number}"
            )

    def add_item(self, item: AuditItem) -> None:
        self._ensure_unlocked("add items")
        if any(existing is item for existing in self._items):
            raise InvariantViolation(f"Item {item.item_number} is already part of this audit")
        self._items.append(item)
        self._apply()

    def create_item(
        self,
        description: str,
        item_type: AuditItemType,
        is_required: bool = True,
        category: str | None = None,
        sort_order: int | None = None,
        expected_result: str | None = None,
        max_points: int | None = None,
    ) -> AuditItem:
        """Create a checklist item bound to this audit and add it.

        ``sort_order`` defaults to one past the current highest.
        """
        self._ensure_unlocked("add items")
        if sort_order is None:
            sort_order = max((i.sort_order for i in self._items), default=0) + 1
        item = AuditItem.create(
            self.id,
            description,
            item_type,
            is_required=is_required,
            category=category,
            sort_order=sort_order,
            expected_result=expected_result,
            max_points=max_points,
        )
        self.add_item(item)
        return item

    def remove_item(self, item: AuditItem) -> None:
        self._ensure_unlocked("remove items")
        remaining = [i for i in self._items if i is not item]
        self._apply(_items=remaining)

    def find_item(self, item_number: str) -> AuditItem | None:
        for item in self._items:
            if item.item_number == item_number:
                return item
        return None

    def add_finding(self, finding: AuditFinding) -> None:
        """Attach a finding; the audit risk level is re-derived from all findings."""
        self._ensure_unlocked("add findings")
        self._findings.append(finding)
        self._apply()
        self._record(
            FindingAdded,
            finding_number=finding.finding_number,
            finding_type=finding.finding_type,
            severity=finding.severity,
        )

    def raise_finding(
        self,
        description: str,
        finding_type: FindingType,
        severity: FindingSeverity,
        location: str | None = None,
        equipment: str | None = None,
        audit_item_number: str | None = None,
    ) -> AuditFinding:
        """Create a finding bound to this audit and add it."""
        self._ensure_unlocked("add findings")
        if audit_item_number is not None and self.find_item(audit_item_number) is None:
            raise InvariantViolation(
                f"Item {audit_item_number} does not belong to audit {self.audit_number}"
            )
        finding = AuditFinding.create(
            self.id,
            description,
            finding_type,
            severity,
            location=location,
            equipment=equipment,
            audit_item_number=audit_item_number,
        )
        self.add_finding(finding)
        return finding

    def add_attachment(self, attachment: AuditAttachment) -> None:
        self._attachments.append(attachment)
        self._apply()

    def remove_attachment(self, attachment: AuditAttachment) -> None:
        self._apply(_attachments=[a for a in self._attachments if a is not attachment])

    def add_comment(self, comment: AuditComment) -> None:
        self._comments.append(comment)
        self._apply()

    # ------------------------------------------------------------------
    # Scoring and events

    def calculate_score(self) -> scoring.ScoreResult | None:
        """Score completed items; always None when scoring is disabled."""
        if not self.scoring_enabled:
            return None
        return scoring.calculate_score(self._items)

    def _record(self, event_cls: type[DomainEvent], **payload: Any) -> None:
        self._events.append(
            event_cls(audit_id=self.id, audit_number=self.audit_number, **payload)
        )

    @property
    def domain_events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)

    def pull_domain_events(self) -> list[DomainEvent]:
        """Return queued events and clear the queue.

        Events recorded before the audit had an id are stamped with it.
        """
        events = [
            e.model_copy(update={"audit_id": self.id})
            if e.audit_id is None and self.id is not None
            else e
            for e in self._events
        ]
        self._events.clear()
        return events

    # ------------------------------------------------------------------
    # Derived state

    @property
    def items(self) -> tuple[AuditItem, ...]:
        return tuple(self._items)

    @property
    def findings(self) -> tuple[AuditFinding, ...]:
        return tuple(self._findings)

    @property
    def attachments(self) -> tuple[AuditAttachment, ...]:
        return tuple(self._attachments)

    @property
    def comments(self) -> tuple[AuditComment, ...]:
        return tuple(self._comments)

    @property
    def risk_level(self) -> RiskLevel:
        return scoring.aggregate_risk(f.severity for f in self._findings)

    @property
    def is_overdue(self) -> bool:
        if self.status == AuditStatus.OVERDUE:
            return True
        return self.status == AuditStatus.SCHEDULED and self.scheduled_date < time_utils.utc_now()

    @property
    def days_overdue(self) -> int:
        if not self.is_overdue:
            return 0
        return max((time_utils.utc_now().date() - self.scheduled_date.date()).days, 0)

    @property
    def can_edit(self) -> bool:
        return self.status in EDITABLE_STATUSES

    @property
    def can_start(self) -> bool:
        return self.status in SCHEDULED_STATUSES

    @property
    def can_complete(self) -> bool:
        return self.status == AuditStatus.IN_PROGRESS

    @property
    def can_cancel(self) -> bool:
        return self.status not in LOCKED_STATUSES

    @property
    def can_archive(self) -> bool:
        return self.status in (AuditStatus.COMPLETED, AuditStatus.CANCELLED)

    @property
    def has_findings(self) -> bool:
        return bool(self._findings)

    @property
    def has_critical_findings(self) -> bool:
        return any(f.severity == FindingSeverity.CRITICAL for f in self._findings)

    @property
    def is_high_risk(self) -> bool:
        return self.risk_level >= RiskLevel.HIGH

    @property
    def open_findings(self) -> tuple[AuditFinding, ...]:
        return tuple(f for f in self._findings if f.status != FindingStatus.CLOSED)

    @property
    def findings_count(self) -> int:
        return len(self._findings)

    @property
    def items_count(self) -> int:
        return len(self._items)

    @property
    def completion_percentage(self) -> int:
        if not self._items:
            return 0
        done = sum(
            1
            for i in self._items
            if i.status in (AuditItemStatus.COMPLETED, AuditItemStatus.NOT_APPLICABLE)
        )
        return round(done / len(self._items) * 100)

    # ------------------------------------------------------------------
    # Snapshot

    def to_dict(self) -> dict[str, Any]:
        """Serialize the whole aggregate (queued events excluded)."""
        return {
            "id": self.id,
            "version": self.version,
            "audit_number": self.audit_number,
            "title": self.title,
            "description": self.description,
            "audit_type": self.audit_type.value,
            "category": self.category.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "scheduled_date": time_utils.to_iso(self.scheduled_date),
            "started_date": time_utils.to_iso(self.started_date),
            "completed_date": time_utils.to_iso(self.completed_date),
            "auditor_id": self.auditor_id,
            "location_id": self.location_id,
            "department_id": self.department_id,
            "facility_id": self.facility_id,
            "risk_level": self.risk_level.value,
            "summary": self.summary,
            "recommendations": self.recommendations,
            "overall_score": self.overall_score.value if self.overall_score else None,
            "score_percentage": str(self.score_percentage)
            if self.score_percentage is not None
            else None,
            "total_possible_points": self.total_possible_points,
            "achieved_points": self.achieved_points,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "actual_duration_minutes": self.actual_duration_minutes,
            "standards_applied": self.standards_applied,
            "is_regulatory": self.is_regulatory,
            "regulatory_reference": self.regulatory_reference,
            "scoring_enabled": self.scoring_enabled,
            "created_at": time_utils.to_iso(self.created_at),
            "created_by": self.created_by,
            "modified_at": time_utils.to_iso(self.modified_at),
            "items": [i.to_dict() for i in self._items],
            "findings": [f.to_dict() for f in self._findings],
            "attachments": [a.to_dict() for a in self._attachments],
            "comments": [c.to_dict() for c in self._comments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Audit":
        """Rehydrate a persisted aggregate without replaying transitions."""
        score = data.get("score_percentage")
        return cls(
            id=data.get("id"),
            version=data.get("version", 0),
            audit_number=data["audit_number"],
            title=data["title"],
            description=data.get("description", ""),
            audit_type=AuditType(data["audit_type"]),
            category=AuditCategory(data["category"]),
            priority=AuditPriority(data["priority"]),
            status=AuditStatus(data["status"]),
            scheduled_date=time_utils.from_iso(data["scheduled_date"]),
            started_date=time_utils.from_iso(data.get("started_date")),
            completed_date=time_utils.from_iso(data.get("completed_date")),
            auditor_id=data["auditor_id"],
            location_id=data.get("location_id"),
            department_id=data.get("department_id"),
            facility_id=data.get("facility_id"),
            summary=data.get("summary"),
            recommendations=data.get("recommendations"),
            overall_score=AuditScore(data["overall_score"]) if data.get("overall_score") else None,
            score_percentage=Decimal(score) if score is not None else None,
            total_possible_points=data.get("total_possible_points"),
            achieved_points=data.get("achieved_points"),
            estimated_duration_minutes=data.get("estimated_duration_minutes"),
            actual_duration_minutes=data.get("actual_duration_minutes"),
            standards_applied=data.get("standards_applied"),
            is_regulatory=data.get("is_regulatory", False),
            regulatory_reference=data.get("regulatory_reference"),
            scoring_enabled=data.get("scoring_enabled", True),
            created_at=time_utils.from_iso(data.get("created_at")) or time_utils.utc_now(),
            created_by=data.get("created_by", ""),
            modified_at=time_utils.from_iso(data.get("modified_at")),
            _items=[AuditItem.from_dict(i) for i in data.get("items", [])],
            _findings=[AuditFinding.from_dict(f) for f in data.get("findings", [])],
            _attachments=[AuditAttachment.from_dict(a) for a in data.get("attachments", [])],
            _comments=[AuditComment.from_dict(c) for c in data.get("comments", [])],
        )


def _check_duration(minutes: int | None) -> None:
    if minutes is not None and minutes < 0:
        raise ValueError(f"Duration must be non-negative, got {minutes}")
