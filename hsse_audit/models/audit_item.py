"""Checklist item assessed during an audit."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hsse_audit import numbering, scoring
from hsse_audit.models.base import DomainEntity
from hsse_audit.models.enums import AuditItemStatus, AuditItemType
from hsse_audit.models.errors import IllegalStateTransition
from hsse_audit.utils import time_utils

_ASSESSABLE = (AuditItemStatus.NOT_STARTED, AuditItemStatus.IN_PROGRESS)


@dataclass(frozen=True, eq=False)
class AuditItem(DomainEntity):
    """A single checklist question inside an audit.

    Status moves ``NOT_STARTED -> IN_PROGRESS -> COMPLETED | NON_COMPLIANT``;
    a non-compliant item becomes ``REQUIRES_FOLLOW_UP`` once a corrective
    action is attached. Any item can be marked not applicable or reset.
    """

    audit_id: int | None
    item_number: str
    description: str
    item_type: AuditItemType
    status: AuditItemStatus = AuditItemStatus.NOT_STARTED
    category: str | None = None
    is_required: bool = True
    sort_order: int = 0

    # Assessment data
    expected_result: str | None = None
    actual_result: str | None = None
    comments: str | None = None
    is_compliant: bool | None = None
    max_points: int | None = None
    actual_points: int | None = None
    assessed_by: str | None = None
    assessed_at: datetime | None = None
    evidence: str | None = None

    # Follow-up
    corrective_action: str | None = None
    due_date: datetime | None = None
    responsible_person_id: int | None = None

    validation_criteria: str | None = None
    acceptance_criteria: str | None = None

    created_at: datetime = field(default_factory=time_utils.utc_now)
    modified_at: datetime | None = None

    @classmethod
    def create(
        cls,
        audit_id: int | None,
        description: str,
        item_type: AuditItemType,
        is_required: bool = True,
        category: str | None = None,
        sort_order: int = 0,
        expected_result: str | None = None,
        max_points: int | None = None,
    ) -> "AuditItem":
        """Create a not-started item numbered from its audit and sort order."""
        return cls(
            audit_id=audit_id,
            item_number=numbering.generate_item_number(audit_id, sort_order),
            description=description,
            item_type=item_type,
            is_required=is_required,
            category=category,
            sort_order=sort_order,
            expected_result=expected_result,
            max_points=max_points,
        )

    def update_description(self, description: str, expected_result: str | None = None) -> None:
        self._apply(description=description, expected_result=expected_result)

    def set_validation_criteria(
        self, validation_criteria: str, acceptance_criteria: str | None = None
    ) -> None:
        self._apply(
            validation_criteria=validation_criteria,
            acceptance_criteria=acceptance_criteria,
        )

    def start_assessment(self) -> None:
        """Begin assessing a not-started item."""
        if self.status != AuditItemStatus.NOT_STARTED:
            raise IllegalStateTransition(
                "start_assessment", self.status, "Only not started items can be started"
            )
        self._apply(status=AuditItemStatus.IN_PROGRESS)

    def complete_assessment(
        self,
        actual_result: str,
        is_compliant: bool,
        assessed_by: str,
        actual_points: int | None = None,
        comments: str | None = None,
        evidence: str | None = None,
    ) -> None:
        """Record the assessment outcome.

        Compliant items become ``COMPLETED``; others become ``NON_COMPLIANT``.
        """
        if self.status not in _ASSESSABLE:
            raise IllegalStateTransition(
                "complete_assessment",
                self.status,
                "Only in-progress or not started items can be completed",
            )
        self._apply(
            status=AuditItemStatus.COMPLETED if is_compliant else AuditItemStatus.NON_COMPLIANT,
            actual_result=actual_result,
            is_compliant=is_compliant,
            assessed_by=assessed_by,
            assessed_at=time_utils.utc_now(),
            actual_points=actual_points,
            comments=comments,
            evidence=evidence,
        )

    def mark_as_not_applicable(self, reason: str, assessed_by: str) -> None:
        self._apply(
            status=AuditItemStatus.NOT_APPLICABLE,
            actual_result=f"Not Applicable: {reason}",
            assessed_by=assessed_by,
            assessed_at=time_utils.utc_now(),
            is_compliant=None,
        )

    def add_corrective_action(
        self,
        corrective_action: str,
        due_date: datetime | None = None,
        responsible_person_id: int | None = None,
    ) -> None:
        """Attach follow-up work to a non-compliant item.

        A non-empty action moves the item to ``REQUIRES_FOLLOW_UP``.

        Args:
            corrective_action: What has to be done.
            due_date: Deadline for the action.
            responsible_person_id: Owner of the action.
        """
        if self.status != AuditItemStatus.NON_COMPLIANT:
            raise IllegalStateTransition(
                "add_corrective_action",
                self.status,
                "Corrective actions can only be added to non-compliant items",
            )
        changes: dict[str, Any] = {
            "corrective_action": corrective_action,
            "due_date": time_utils.ensure_utc(due_date),
            "responsible_person_id": responsible_person_id,
        }
        if corrective_action:
            changes["status"] = AuditItemStatus.REQUIRES_FOLLOW_UP
        self._apply(**changes)

    def update_score(self, max_points: int, actual_points: int | None = None) -> None:
        self._apply(max_points=max_points, actual_points=actual_points)

    def reset(self) -> None:
        """Return the item to ``NOT_STARTED`` for re-assessment."""
        self._apply(
            status=AuditItemStatus.NOT_STARTED,
            actual_result=None,
            is_compliant=None,
            assessed_by=None,
            assessed_at=None,
            actual_points=None,
            comments=None,
            evidence=None,
            corrective_action=None,
            due_date=None,
            responsible_person_id=None,
        )

    def _rebind(self, audit_id: int) -> None:
        # Called by the owning audit when it receives its persistent id.
        self._apply(
            _touch=False,
            audit_id=audit_id,
            item_number=numbering.generate_item_number(audit_id, self.sort_order),
        )

    @property
    def requires_follow_up(self) -> bool:
        return self.status == AuditItemStatus.REQUIRES_FOLLOW_UP or (
            bool(self.corrective_action) and self.status == AuditItemStatus.NON_COMPLIANT
        )

    @property
    def is_overdue(self) -> bool:
        return (
            self.due_date is not None
            and self.due_date < time_utils.utc_now()
            and self.status != AuditItemStatus.COMPLETED
        )

    @property
    def score_percentage(self) -> float | None:
        if self.max_points is None or self.actual_points is None or self.max_points <= 0:
            return None
        return float(scoring.round_percentage(self.actual_points, self.max_points))

    def to_dict(self) -> dict[str, Any]:
        return {
            "audit_id": self.audit_id,
            "item_number": self.item_number,
            "description": self.description,
            "item_type": self.item_type.value,
            "status": self.status.value,
            "category": self.category,
            "is_required": self.is_required,
            "sort_order": self.sort_order,
            "expected_result": self.expected_result,
            "actual_result": self.actual_result,
            "comments": self.comments,
            "is_compliant": self.is_compliant,
            "max_points": self.max_points,
            "actual_points": self.actual_points,
            "assessed_by": self.assessed_by,
            "assessed_at": time_utils.to_iso(self.assessed_at),
            "evidence": self.evidence,
            "corrective_action": self.corrective_action,
            "due_date": time_utils.to_iso(self.due_date),
            "responsible_person_id": self.responsible_person_id,
            "validation_criteria": self.validation_criteria,
            "acceptance_criteria": self.acceptance_criteria,
            "created_at": time_utils.to_iso(self.created_at),
            "modified_at": time_utils.to_iso(self.modified_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditItem":
        return cls(
            audit_id=data.get("audit_id"),
            item_number=data["item_number"],
            description=data["description"],
            item_type=AuditItemType(data["item_type"]),
            status=AuditItemStatus(data.get("status", AuditItemStatus.NOT_STARTED.value)),
            category=data.get("category"),
            is_required=data.get("is_required", True),
            sort_order=data.get("sort_order", 0),
            expected_result=data.get("expected_result"),
            actual_result=data.get("actual_result"),
            comments=data.get("comments"),
            is_compliant=data.get("is_compliant"),
            max_points=data.get("max_points"),
            actual_points=data.get("actual_points"),
            assessed_by=data.get("assessed_by"),
            assessed_at=time_utils.from_iso(data.get("assessed_at")),
            evidence=data.get("evidence"),
            corrective_action=data.get("corrective_action"),
            due_date=time_utils.from_iso(data.get("due_date")),
            responsible_person_id=data.get("responsible_person_id"),
            validation_criteria=data.get("validation_criteria"),
            acceptance_criteria=data.get("acceptance_criteria"),
            created_at=time_utils.from_iso(data.get("created_at")) or time_utils.utc_now(),
            modified_at=time_utils.from_iso(data.get("modified_at")),
        )
