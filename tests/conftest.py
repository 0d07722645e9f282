"""Shared fixtures for audit engine tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from hsse_audit.models import (
    Audit,
    AuditCategory,
    AuditPriority,
    AuditType,
)

NOW = datetime(2025, 6, 13, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def frozen_clock():
    """Pin the engine clock; yields the patch so tests can move time."""
    with patch("hsse_audit.utils.time_utils.utc_now", return_value=NOW) as clock:
        yield clock


def make_audit(**overrides) -> Audit:
    params = {
        "title": "Warehouse fire safety audit",
        "description": "Quarterly fire safety walk-through",
        "audit_type": AuditType.FIRE,
        "category": AuditCategory.ROUTINE,
        "priority": AuditPriority.MEDIUM,
        "scheduled_date": datetime.now(timezone.utc) + timedelta(days=7),
        "auditor_id": 42,
    }
    params.update(overrides)
    return Audit.create(**params)


@pytest.fixture
def audit() -> Audit:
    return make_audit()


@pytest.fixture
def running_audit() -> Audit:
    audit = make_audit()
    audit.schedule(audit.scheduled_date)
    audit.start_audit()
    audit.pull_domain_events()
    return audit
