"""Non-conformance findings and their verification lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from hsse_audit import numbering, scoring
from hsse_audit.models.attachment import FindingAttachment
from hsse_audit.models.base import DomainEntity
from hsse_audit.models.enums import FindingSeverity, FindingStatus, FindingType, RiskLevel
from hsse_audit.models.errors import IllegalStateTransition
from hsse_audit.utils import time_utils

STATUS_DISPLAY = {
    FindingStatus.OPEN: "Open",
    FindingStatus.IN_PROGRESS: "In Progress",
    FindingStatus.RESOLVED: "Resolved",
    FindingStatus.VERIFIED: "Verified",
    FindingStatus.CLOSED: "Closed",
}


def _decimal_or_none(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


@dataclass(frozen=True, eq=False)
class AuditFinding(DomainEntity):
    """A non-conformance, observation or positive note raised in an audit.

    Lifecycle: ``OPEN -> IN_PROGRESS -> RESOLVED -> VERIFIED -> CLOSED``.
    Major and critical findings must be verified before they can be closed;
    lower severities may close straight from ``RESOLVED``. A closed finding
    rejects every mutation except ``reopen``.
    """

    audit_id: int | None
    finding_number: str
    description: str
    finding_type: FindingType
    severity: FindingSeverity
    risk_level: RiskLevel
    requires_verification: bool
    status: FindingStatus = FindingStatus.OPEN

    # Context
    location: str | None = None
    equipment: str | None = None
    standard: str | None = None
    regulation: str | None = None
    audit_item_number: str | None = None

    # Root cause and actions
    root_cause: str | None = None
    immediate_action: str | None = None
    corrective_action: str | None = None
    preventive_action: str | None = None
    due_date: datetime | None = None
    responsible_person_id: int | None = None
    responsible_person_name: str | None = None

    # Closure and verification
    closed_date: datetime | None = None
    closure_notes: str | None = None
    closed_by: str | None = None
    verification_method: str | None = None
    verification_date: datetime | None = None
    verified_by: str | None = None
    reopen_reason: str | None = None

    # Cost and impact
    estimated_cost: Decimal | None = None
    actual_cost: Decimal | None = None
    business_impact: str | None = None

    created_at: datetime = field(default_factory=time_utils.utc_now)
    modified_at: datetime | None = None
    _attachments: list[FindingAttachment] = field(default_factory=list, repr=False)

    @classmethod
    def create(
        cls,
        audit_id: int | None,
        description: str,
        finding_type: FindingType,
        severity: FindingSeverity,
        location: str | None = None,
        equipment: str | None = None,
        audit_item_number: str | None = None,
    ) -> "AuditFinding":
        """Create an open finding; risk level and verification follow severity."""
        return cls(
            audit_id=audit_id,
            finding_number=numbering.generate_finding_number(),
            description=description,
            finding_type=finding_type,
            severity=severity,
            risk_level=scoring.severity_to_risk(severity),
            requires_verification=scoring.requires_verification(severity),
            location=location,
            equipment=equipment,
            audit_item_number=audit_item_number,
        )

    def _ensure_editable(self, operation: str) -> None:
        if self.status == FindingStatus.CLOSED:
            raise IllegalStateTransition(operation, self.status, "Cannot update closed finding")

    def update_description(self, description: str) -> None:
        self._ensure_editable("update_description")
        self._apply(description=description)

    def update_severity(self, severity: FindingSeverity) -> None:
        self._ensure_editable("update_severity")
        self._apply(
            severity=severity,
            risk_level=scoring.severity_to_risk(severity),
            requires_verification=scoring.requires_verification(severity),
        )

    def set_context(
        self,
        location: str | None = None,
        equipment: str | None = None,
        standard: str | None = None,
        regulation: str | None = None,
    ) -> None:
        self._ensure_editable("set_context")
        self._apply(location=location, equipment=equipment, standard=standard, regulation=regulation)

    def set_root_cause(self, root_cause: str) -> None:
        self._ensure_editable("set_root_cause")
        self._apply(root_cause=root_cause)

    def set_immediate_action(self, immediate_action: str) -> None:
        self._ensure_editable("set_immediate_action")
        self._apply(immediate_action=immediate_action)

    def set_corrective_action(
        self,
        corrective_action: str,
        due_date: datetime | None = None,
        responsible_person_id: int | None = None,
        responsible_person_name: str | None = None,
    ) -> None:
        """Record the corrective action; an open finding moves to in progress."""
        self._ensure_editable("set_corrective_action")
        changes: dict[str, Any] = {
            "corrective_action": corrective_action,
            "due_date": time_utils.ensure_utc(due_date),
            "responsible_person_id": responsible_person_id,
            "responsible_person_name": responsible_person_name,
        }
        if self.status == FindingStatus.OPEN:
            changes["status"] = FindingStatus.IN_PROGRESS
        self._apply(**changes)

    def set_preventive_action(self, preventive_action: str) -> None:
        self._ensure_editable("set_preventive_action")
        self._apply(preventive_action=preventive_action)

    def set_cost_information(
        self,
        estimated_cost: Decimal | None,
        actual_cost: Decimal | None = None,
        business_impact: str | None = None,
    ) -> None:
        self._ensure_editable("set_cost_information")
        self._apply(
            estimated_cost=_decimal_or_none(estimated_cost),
            actual_cost=_decimal_or_none(actual_cost),
            business_impact=business_impact,
        )

    def mark_as_resolved(self) -> None:
        """Mark the corrective work as done (``IN_PROGRESS`` to ``RESOLVED``)."""
        if self.status != FindingStatus.IN_PROGRESS:
            raise IllegalStateTransition(
                "mark_as_resolved",
                self.status,
                "Only in-progress findings can be marked as resolved",
            )
        self._apply(status=FindingStatus.RESOLVED)

    def mark_as_verified(self, verified_by: str, verification_method: str | None = None) -> None:
        """Sign off a resolved finding.

        Args:
            verified_by: Who checked the fix.
            verification_method: How it was checked (site walk, document review...).

        Raises:
            IllegalStateTransition: If the finding is not ``RESOLVED``.
        """
        if self.status != FindingStatus.RESOLVED:
            raise IllegalStateTransition(
                "mark_as_verified", self.status, "Only resolved findings can be verified"
            )
        self._apply(
            status=FindingStatus.VERIFIED,
            verified_by=verified_by,
            verification_date=time_utils.utc_now(),
            verification_method=verification_method,
        )

    def close(self, closure_notes: str, closed_by: str) -> None:
        """Close the finding.

        Args:
            closure_notes: Closing remarks.
            closed_by: Who closed it.

        Raises:
            IllegalStateTransition: If a major or critical finding is not yet
                verified, or the finding is neither resolved nor verified.
        """
        if self.requires_verification and self.status != FindingStatus.VERIFIED:
            raise IllegalStateTransition(
                "close",
                self.status,
                "Critical and major findings must be verified before closing",
            )
        if self.status not in (FindingStatus.VERIFIED, FindingStatus.RESOLVED):
            raise IllegalStateTransition(
                "close", self.status, "Only verified or resolved findings can be closed"
            )
        self._apply(
            status=FindingStatus.CLOSED,
            closed_date=time_utils.utc_now(),
            closure_notes=closure_notes,
            closed_by=closed_by,
        )

    def reopen(self, reason: str) -> bool:
        """Reopen a closed finding.

        The finding goes back to ``IN_PROGRESS`` if a corrective action is on
        record, else to ``OPEN``. Closure and verification details are cleared.

        Args:
            reason: Why the finding is being reopened.

        Returns:
            True if the finding was reopened; False, with no change, when it
            was not closed.
        """
        if self.status != FindingStatus.CLOSED:
            return False
        self._apply(
            status=FindingStatus.IN_PROGRESS if self.corrective_action else FindingStatus.OPEN,
            closed_date=None,
            closure_notes=None,
            closed_by=None,
            verification_date=None,
            verified_by=None,
            verification_method=None,
            reopen_reason=reason,
        )
        return True

    def add_attachment(self, attachment: FindingAttachment) -> None:
        self._attachments.append(attachment)
        self._apply()

    def remove_attachment(self, attachment: FindingAttachment) -> None:
        remaining = [a for a in self._attachments if a is not attachment]
        if len(remaining) != len(self._attachments):
            self._apply(_attachments=remaining)

    def _rebind(self, audit_id: int, item_numbers: dict[str, str]) -> None:
        self._apply(
            _touch=False,
            audit_id=audit_id,
            audit_item_number=item_numbers.get(self.audit_item_number, self.audit_item_number)
            if self.audit_item_number
            else None,
        )

    @property
    def attachments(self) -> tuple[FindingAttachment, ...]:
        return tuple(self._attachments)

    @property
    def is_overdue(self) -> bool:
        return (
            self.due_date is not None
            and self.due_date < time_utils.utc_now()
            and self.status != FindingStatus.CLOSED
        )

    @property
    def days_overdue(self) -> int:
        if not self.is_overdue:
            return 0
        return (time_utils.utc_now().date() - self.due_date.date()).days

    @property
    def can_edit(self) -> bool:
        return self.status != FindingStatus.CLOSED

    @property
    def can_close(self) -> bool:
        if self.requires_verification:
            return self.status == FindingStatus.VERIFIED
        return self.status in (FindingStatus.VERIFIED, FindingStatus.RESOLVED)

    @property
    def has_corrective_action(self) -> bool:
        return bool(self.corrective_action)

    @property
    def is_critical(self) -> bool:
        return self.severity == FindingSeverity.CRITICAL

    @property
    def is_high_priority(self) -> bool:
        return self.severity >= FindingSeverity.MAJOR

    @property
    def status_display(self) -> str:
        return STATUS_DISPLAY.get(self.status, "Unknown")

    def to_dict(self) -> dict[str, Any]:
        return {
            "audit_id": self.audit_id,
            "finding_number": self.finding_number,
            "description": self.description,
            "finding_type": self.finding_type.value,
            "severity": self.severity.value,
            "risk_level": self.risk_level.value,
            "requires_verification": self.requires_verification,
            "status": self.status.value,
            "location": self.location,
            "equipment": self.equipment,
            "standard": self.standard,
            "regulation": self.regulation,
            "audit_item_number": self.audit_item_number,
            "root_cause": self.root_cause,
            "immediate_action": self.immediate_action,
            "corrective_action": self.corrective_action,
            "preventive_action": self.preventive_action,
            "due_date": time_utils.to_iso(self.due_date),
            "responsible_person_id": self.responsible_person_id,
            "responsible_person_name": self.responsible_person_name,
            "closed_date": time_utils.to_iso(self.closed_date),
            "closure_notes": self.closure_notes,
            "closed_by": self.closed_by,
            "verification_method": self.verification_method,
            "verification_date": time_utils.to_iso(self.verification_date),
            "verified_by": self.verified_by,
            "reopen_reason": self.reopen_reason,
            "estimated_cost": str(self.estimated_cost) if self.estimated_cost is not None else None,
            "actual_cost": str(self.actual_cost) if self.actual_cost is not None else None,
            "business_impact": self.business_impact,
            "created_at": time_utils.to_iso(self.created_at),
            "modified_at": time_utils.to_iso(self.modified_at),
            "attachments": [a.to_dict() for a in self._attachments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditFinding":
        return cls(
            audit_id=data.get("audit_id"),
            finding_number=data["finding_number"],
            description=data["description"],
            finding_type=FindingType(data["finding_type"]),
            severity=FindingSeverity(data["severity"]),
            risk_level=RiskLevel(data["risk_level"]),
            requires_verification=data["requires_verification"],
            status=FindingStatus(data.get("status", FindingStatus.OPEN.value)),
            location=data.get("location"),
            equipment=data.get("equipment"),
            standard=data.get("standard"),
            regulation=data.get("regulation"),
            audit_item_number=data.get("audit_item_number"),
            root_cause=data.get("root_cause"),
            immediate_action=data.get("immediate_action"),
            corrective_action=data.get("corrective_action"),
            preventive_action=data.get("preventive_action"),
            due_date=time_utils.from_iso(data.get("due_date")),
            responsible_person_id=data.get("responsible_person_id"),
            responsible_person_name=data.get("responsible_person_name"),
            closed_date=time_utils.from_iso(data.get("closed_date")),
            closure_notes=data.get("closure_notes"),
            closed_by=data.get("closed_by"),
            verification_method=data.get("verification_method"),
            verification_date=time_utils.from_iso(data.get("verification_date")),
            verified_by=data.get("verified_by"),
            reopen_reason=data.get("reopen_reason"),
            estimated_cost=_decimal_or_none(data.get("estimated_cost")),
            actual_cost=_decimal_or_none(data.get("actual_cost")),
            business_impact=data.get("business_impact"),
            created_at=time_utils.from_iso(data.get("created_at")) or time_utils.utc_now(),
            modified_at=time_utils.from_iso(data.get("modified_at")),
            _attachments=[FindingAttachment.from_dict(a) for a in data.get("attachments", [])],
        )
