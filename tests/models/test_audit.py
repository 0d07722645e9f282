"""Audit aggregate lifecycle tests."""

import re
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import permutations

import pytest

from conftest import NOW, make_audit
from hsse_audit.models import (
    AttachmentType,
    AuditAttachment,
    AuditCancelled,
    AuditComment,
    AuditCompleted,
    AuditCreated,
    AuditItemStatus,
    AuditItemType,
    AuditOverdue,
    AuditPriority,
    AuditScheduled,
    AuditScore,
    AuditStarted,
    AuditStatus,
    AuditSubmittedForReview,
    AuditType,
    AuditUpdated,
    FindingAdded,
    FindingSeverity,
    FindingType,
    IllegalStateTransition,
    InvariantViolation,
    RiskLevel,
)


def _add_findings(audit, severities):
    for severity in severities:
        audit.raise_finding("Observed issue", FindingType.NON_CONFORMANCE, severity)


class TestAuditCreation:
    """Audit.create tests."""

    def test_create_starts_as_draft_with_low_risk(self, audit):
        assert audit.status == AuditStatus.DRAFT
        assert audit.risk_level == RiskLevel.LOW
        assert audit.overall_score is None
        assert audit.score_percentage is None

    def test_audit_number_uses_type_prefix(self):
        audit = make_audit(audit_type=AuditType.SAFETY)
        assert re.fullmatch(r"SA-\d{8}-[0-9A-F]{6}", audit.audit_number)

    def test_audit_number_default_prefix(self):
        audit = make_audit(audit_type=AuditType.OTHER)
        assert audit.audit_number.startswith("AU-")

    def test_create_records_event(self, audit):
        events = audit.domain_events
        assert len(events) == 1
        assert isinstance(events[0], AuditCreated)
        assert events[0].title == audit.title
        assert events[0].audit_type == AuditType.FIRE

    def test_fields_cannot_be_assigned_directly(self, audit):
        with pytest.raises(FrozenInstanceError):
            audit.status = AuditStatus.COMPLETED

    def test_negative_estimated_duration_rejected(self):
        with pytest.raises(ValueError):
            make_audit(estimated_duration_minutes=-5)

    def test_set_estimated_duration(self, audit):
        audit.set_estimated_duration(90)
        assert audit.estimated_duration_minutes == 90


class TestAuditTransitions:
    """Audit state machine tests."""

    def test_full_happy_path(self, audit):
        audit.schedule(audit.scheduled_date)
        assert audit.status == AuditStatus.SCHEDULED
        audit.start_audit()
        assert audit.status == AuditStatus.IN_PROGRESS
        assert audit.started_date is not None
        audit.complete_audit(summary="All good")
        assert audit.status == AuditStatus.COMPLETED
        assert audit.summary == "All good"
        audit.archive()
        assert audit.status == AuditStatus.ARCHIVED

    def test_events_follow_transitions(self, audit):
        audit.schedule(audit.scheduled_date)
        audit.start_audit()
        audit.complete_audit()
        kinds = [type(e) for e in audit.pull_domain_events()]
        assert kinds == [AuditCreated, AuditScheduled, AuditStarted, AuditCompleted]
        assert audit.domain_events == ()

    def test_schedule_only_from_draft(self, audit):
        audit.schedule(audit.scheduled_date)
        with pytest.raises(IllegalStateTransition) as exc_info:
            audit.schedule(audit.scheduled_date)
        assert exc_info.value.operation == "schedule"
        assert exc_info.value.current_state == AuditStatus.SCHEDULED

    def test_start_requires_scheduled(self, audit):
        with pytest.raises(IllegalStateTransition):
            audit.start_audit()
        assert audit.status == AuditStatus.DRAFT
        assert audit.started_date is None

    def test_complete_draft_fails_without_side_effects(self, audit):
        before = audit.to_dict()
        with pytest.raises(IllegalStateTransition):
            audit.complete_audit(summary="too early")
        assert audit.to_dict() == before
        assert len(audit.domain_events) == 1

    def test_complete_twice_fails(self, running_audit):
        running_audit.complete_audit()
        with pytest.raises(IllegalStateTransition):
            running_audit.complete_audit()
        assert running_audit.status == AuditStatus.COMPLETED

    def test_submit_for_review(self, running_audit):
        running_audit.submit_for_review()
        assert running_audit.status == AuditStatus.UNDER_REVIEW
        assert isinstance(running_audit.domain_events[-1], AuditSubmittedForReview)

    def test_submit_for_review_requires_in_progress(self, audit):
        with pytest.raises(IllegalStateTransition):
            audit.submit_for_review()

    def test_cancel_from_draft(self, audit):
        audit.cancel("No longer required")
        assert audit.status == AuditStatus.CANCELLED
        event = audit.domain_events[-1]
        assert isinstance(event, AuditCancelled)
        assert event.reason == "No longer required"

    def test_cancel_completed_fails(self, running_audit):
        running_audit.complete_audit()
        with pytest.raises(IllegalStateTransition):
            running_audit.cancel("late")
        assert running_audit.status == AuditStatus.COMPLETED

    def test_archive_cancelled(self, audit):
        audit.cancel("duplicate")
        audit.archive()
        assert audit.status == AuditStatus.ARCHIVED

    def test_archive_requires_terminal_state(self, running_audit):
        with pytest.raises(IllegalStateTransition):
            running_audit.archive()
        assert running_audit.status == AuditStatus.IN_PROGRESS

    def test_archived_cannot_be_cancelled(self, audit):
        audit.cancel("duplicate")
        audit.archive()
        with pytest.raises(IllegalStateTransition):
            audit.cancel("again")

    def test_actual_duration_in_minutes(self, frozen_clock):
        audit = make_audit()
        audit.schedule(NOW + timedelta(hours=1))
        audit.start_audit()
        frozen_clock.return_value = NOW + timedelta(minutes=95, seconds=40)
        audit.complete_audit()
        assert audit.actual_duration_minutes == 95
        assert audit.completed_date == NOW + timedelta(minutes=95, seconds=40)

    def test_predicates_per_state(self, audit):
        assert audit.can_edit and audit.can_cancel
        assert not audit.can_start and not audit.can_complete and not audit.can_archive
        audit.schedule(audit.scheduled_date)
        assert audit.can_start and audit.can_edit
        audit.start_audit()
        assert audit.can_complete and not audit.can_edit
        audit.complete_audit()
        assert audit.can_archive and not audit.can_cancel


class TestAuditUpdates:
    """Descriptive update tests."""

    def test_update_basic_info_in_draft(self, audit):
        new_date = datetime(2030, 1, 2, tzinfo=timezone.utc)
        audit.update_basic_info(
            "Renamed audit",
            "New scope",
            AuditPriority.HIGH,
            new_date,
            department_id=3,
            estimated_duration_minutes=120,
        )
        assert audit.title == "Renamed audit"
        assert audit.priority == AuditPriority.HIGH
        assert audit.scheduled_date == new_date
        assert audit.department_id == 3
        assert isinstance(audit.domain_events[-1], AuditUpdated)

    def test_update_basic_info_rejected_once_started(self, running_audit):
        with pytest.raises(IllegalStateTransition):
            running_audit.update_basic_info(
                "Renamed", "x", AuditPriority.LOW, running_audit.scheduled_date
            )
        assert running_audit.title == "Warehouse fire safety audit"

    def test_set_compliance_info(self, audit):
        audit.set_compliance_info("ISO 45001", is_regulatory=True, regulatory_reference="OSHA 1910")
        assert audit.standards_applied == "ISO 45001"
        assert audit.is_regulatory is True
        assert audit.regulatory_reference == "OSHA 1910"


class TestAuditChildren:
    """Item and finding collection tests."""

    def test_create_item_numbers_from_sort_order(self):
        audit = make_audit(audit_id=7)
        first = audit.create_item("Extinguishers inspected", AuditItemType.YES_NO)
        second = audit.create_item("Exit signs lit", AuditItemType.YES_NO)
        assert first.item_number == "AI-000007-001"
        assert second.item_number == "AI-000007-002"
        assert audit.items == (first, second)

    def test_add_item_to_completed_audit_fails(self, running_audit):
        running_audit.complete_audit()
        with pytest.raises(InvariantViolation):
            running_audit.create_item("Late item", AuditItemType.TEXT)
        assert running_audit.items_count == 0

    def test_remove_item_from_archived_audit_fails(self, running_audit):
        item = running_audit.create_item("Item", AuditItemType.TEXT)
        running_audit.complete_audit()
        running_audit.archive()
        with pytest.raises(InvariantViolation):
            running_audit.remove_item(item)
        assert running_audit.items == (item,)

    def test_remove_item(self, audit):
        item = audit.create_item("Item", AuditItemType.TEXT)
        audit.remove_item(item)
        assert audit.items == ()

    def test_add_same_item_twice_fails(self, audit):
        item = audit.create_item("Item", AuditItemType.TEXT)
        with pytest.raises(InvariantViolation):
            audit.add_item(item)

    def test_add_finding_records_event(self, running_audit):
        finding = running_audit.raise_finding(
            "Blocked fire exit", FindingType.NON_CONFORMANCE, FindingSeverity.MAJOR
        )
        event = running_audit.domain_events[-1]
        assert isinstance(event, FindingAdded)
        assert event.finding_number == finding.finding_number
        assert event.severity == FindingSeverity.MAJOR
        assert running_audit.has_findings

    def test_finding_on_locked_audit_fails(self, running_audit):
        running_audit.complete_audit()
        with pytest.raises(InvariantViolation):
            running_audit.raise_finding("Late", FindingType.OBSERVATION, FindingSeverity.MINOR)
        assert not running_audit.has_findings

    def test_finding_linked_to_unknown_item_fails(self, running_audit):
        with pytest.raises(InvariantViolation):
            running_audit.raise_finding(
                "x", FindingType.OBSERVATION, FindingSeverity.MINOR, audit_item_number="AI-000000-999"
            )

    def test_completion_percentage(self, audit):
        assert audit.completion_percentage == 0
        done = audit.create_item("a", AuditItemType.YES_NO)
        skipped = audit.create_item("b", AuditItemType.YES_NO)
        audit.create_item("c", AuditItemType.YES_NO)
        done.complete_assessment("Yes", True, "auditor")
        skipped.mark_as_not_applicable("No forklifts on site", "auditor")
        assert audit.completion_percentage == 67


class TestAuditRisk:
    """Risk level aggregation through the aggregate."""

    def test_critical_with_minors_is_critical(self, running_audit):
        _add_findings(
            running_audit,
            [FindingSeverity.CRITICAL, FindingSeverity.MINOR, FindingSeverity.MINOR],
        )
        assert running_audit.risk_level == RiskLevel.CRITICAL
        assert running_audit.has_critical_findings

    def test_three_majors_escalate_to_critical(self, running_audit):
        _add_findings(running_audit, [FindingSeverity.MAJOR] * 3)
        assert running_audit.risk_level == RiskLevel.CRITICAL
        assert not running_audit.has_critical_findings

    def test_single_major_is_high(self, running_audit):
        _add_findings(running_audit, [FindingSeverity.MAJOR])
        assert running_audit.risk_level == RiskLevel.HIGH
        assert running_audit.is_high_risk

    def test_risk_independent_of_insertion_order(self):
        severities = [FindingSeverity.MAJOR, FindingSeverity.MODERATE, FindingSeverity.MINOR]
        levels = set()
        for order in permutations(severities):
            audit = make_audit()
            _add_findings(audit, order)
            levels.add(audit.risk_level)
        assert levels == {RiskLevel.HIGH}

    def test_risk_follows_severity_update(self, running_audit):
        finding = running_audit.raise_finding(
            "Spill kit missing", FindingType.NON_CONFORMANCE, FindingSeverity.MINOR
        )
        assert running_audit.risk_level == RiskLevel.LOW
        finding.update_severity(FindingSeverity.MODERATE)
        assert running_audit.risk_level == RiskLevel.MEDIUM


class TestAuditScoring:
    """Score banding at completion."""

    def test_score_set_only_at_completion(self, running_audit):
        for points in [9, 8, 8, 8, 8, 8, 8, 8, 8, 9]:
            item = running_audit.create_item("Check", AuditItemType.RATING, max_points=10)
            item.complete_assessment("ok", True, "auditor", actual_points=points)
        assert running_audit.score_percentage is None

        running_audit.complete_audit()

        assert running_audit.score_percentage == Decimal("82.00")
        assert running_audit.overall_score == AuditScore.GOOD
        assert running_audit.total_possible_points == 100
        assert running_audit.achieved_points == 82
        event = running_audit.domain_events[-1]
        assert event.overall_score == AuditScore.GOOD

    def test_no_completed_items_leaves_score_empty(self, running_audit):
        item = running_audit.create_item("Check", AuditItemType.YES_NO, max_points=5)
        item.complete_assessment("no", False, "auditor", actual_points=0)
        running_audit.complete_audit()
        assert running_audit.overall_score is None
        assert running_audit.score_percentage is None

    def test_inspection_variant_skips_scoring(self):
        inspection = make_audit(scoring_enabled=False)
        inspection.schedule(inspection.scheduled_date)
        inspection.start_audit()
        item = inspection.create_item("Check", AuditItemType.YES_NO, max_points=5)
        item.complete_assessment("yes", True, "inspector", actual_points=5)
        assert inspection.calculate_score() is None
        inspection.complete_audit()
        assert inspection.status == AuditStatus.COMPLETED
        assert inspection.overall_score is None


class TestAuditOverdue:
    """Advisory overdue marking."""

    def test_mark_overdue_when_past_due(self):
        audit = make_audit()
        audit.schedule(datetime.now(timezone.utc) - timedelta(days=2))
        assert audit.is_overdue
        assert audit.mark_overdue() is True
        assert audit.status == AuditStatus.OVERDUE
        assert isinstance(audit.domain_events[-1], AuditOverdue)
        assert audit.days_overdue >= 1

    def test_mark_overdue_before_due_is_noop(self, audit):
        audit.schedule(audit.scheduled_date)
        assert audit.mark_overdue() is False
        assert audit.status == AuditStatus.SCHEDULED

    def test_mark_overdue_requires_scheduled(self, audit):
        with pytest.raises(IllegalStateTransition):
            audit.mark_overdue()

    def test_overdue_audit_can_still_start_or_cancel(self):
        audit = make_audit()
        audit.schedule(datetime.now(timezone.utc) - timedelta(days=1))
        audit.mark_overdue()
        assert audit.can_start
        audit.start_audit()
        assert audit.status == AuditStatus.IN_PROGRESS

        other = make_audit()
        other.schedule(datetime.now(timezone.utc) - timedelta(days=1))
        other.mark_overdue()
        other.cancel("Site closed")
        assert other.status == AuditStatus.CANCELLED


class TestAuditIdentity:
    """Id binding and event draining."""

    def test_assign_id_renumbers_children(self, audit):
        item = audit.create_item("Check", AuditItemType.YES_NO)
        finding = audit.raise_finding(
            "Issue", FindingType.OBSERVATION, FindingSeverity.MINOR, audit_item_number=item.item_number
        )
        assert item.item_number == "AI-000000-001"

        audit.assign_id(15)

        assert audit.id == 15
        assert item.item_number == "AI-000015-001"
        assert item.audit_id == 15
        assert finding.audit_id == 15
        assert finding.audit_item_number == "AI-000015-001"

    def test_assign_id_relinks_attachments_and_comments(self, audit):
        item = audit.create_item("Check", AuditItemType.PHOTO)
        photo = AuditAttachment(
            file_name="bay3.jpg",
            original_file_name="IMG_0042.jpg",
            content_type="image/jpeg",
            file_size=1024,
            file_path="/uploads/bay3.jpg",
            uploaded_by="auditor",
            attachment_type=AttachmentType.PHOTO,
            is_evidence=True,
            audit_item_number=item.item_number,
        )
        note = AuditComment(
            comment="Photo taken at noon",
            commented_by="auditor",
            audit_item_number=item.item_number,
        )
        audit.add_attachment(photo)
        audit.add_comment(note)

        audit.assign_id(4)

        assert photo.audit_item_number == "AI-000004-001"
        assert note.audit_item_number == "AI-000004-001"
        audit.remove_attachment(photo)
        assert audit.attachments == ()
        assert audit.comments == (note,)

    def test_assign_id_only_once(self, audit):
        audit.assign_id(1)
        audit.assign_id(1)
        with pytest.raises(InvariantViolation):
            audit.assign_id(2)

    def test_mark_persisted_binds_id_and_version(self, audit):
        modified_at = audit.modified_at

        audit.mark_persisted(7, 3)

        assert audit.id == 7
        assert audit.version == 3
        assert audit.modified_at == modified_at
        assert type(audit).from_dict(audit.to_dict()).version == 3

    def test_pulled_events_carry_assigned_id(self, audit):
        audit.assign_id(9)
        events = audit.pull_domain_events()
        assert events[0].audit_id == 9
        assert audit.domain_events == ()

    def test_snapshot_rehydrates_state(self, running_audit):
        item = running_audit.create_item("Check", AuditItemType.YES_NO, max_points=4)
        item.complete_assessment("yes", True, "auditor", actual_points=3)
        running_audit.raise_finding("Issue", FindingType.OBSERVATION, FindingSeverity.MODERATE)
        running_audit.complete_audit()

        restored = type(running_audit).from_dict(running_audit.to_dict())

        assert restored.status == AuditStatus.COMPLETED
        assert restored.score_percentage == Decimal("75.00")
        assert restored.risk_level == RiskLevel.MEDIUM
        assert restored.items[0].status == AuditItemStatus.COMPLETED
        assert restored.domain_events == ()
