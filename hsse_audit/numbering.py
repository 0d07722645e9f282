"""Human-readable identifiers for audits, findings and checklist items."""

from __future__ import annotations

import uuid
from datetime import datetime

from hsse_audit.models.enums import AuditType
from hsse_audit.utils import time_utils

AUDIT_TYPE_PREFIXES: dict[AuditType, str] = {
    AuditType.SAFETY: "SA",
    AuditType.ENVIRONMENTAL: "EA",
    AuditType.EQUIPMENT: "EQ",
    AuditType.COMPLIANCE: "CA",
    AuditType.FIRE: "FA",
    AuditType.CHEMICAL: "CH",
    AuditType.ERGONOMIC: "ER",
    AuditType.EMERGENCY: "EM",
    AuditType.MANAGEMENT: "MA",
    AuditType.PROCESS: "PA",
}
DEFAULT_AUDIT_PREFIX = "AU"
FINDING_PREFIX = "FND"
ITEM_PREFIX = "AI"


def _random_suffix() -> str:
    return uuid.uuid4().hex[:6].upper()


def _date_stamp(now: datetime | None) -> str:
    return (now or time_utils.utc_now()).strftime("%Y%m%d")


def audit_prefix(audit_type: AuditType) -> str:
    return AUDIT_TYPE_PREFIXES.get(audit_type, DEFAULT_AUDIT_PREFIX)


def generate_audit_number(audit_type: AuditType, now: datetime | None = None) -> str:
    """Build ``{prefix}-{yyyyMMdd}-{XXXXXX}`` for a new audit."""
    return f"{audit_prefix(audit_type)}-{_date_stamp(now)}-{_random_suffix()}"


def generate_finding_number(now: datetime | None = None) -> str:
    """Build ``FND-{yyyyMMdd}-{XXXXXX}`` for a new finding."""
    return f"{FINDING_PREFIX}-{_date_stamp(now)}-{_random_suffix()}"


def generate_item_number(audit_id: int | None, sort_order: int) -> str:
    """Build ``AI-{auditId:06}-{sortOrder:03}``; an unsaved audit counts as 0."""
    return f"{ITEM_PREFIX}-{audit_id or 0:06d}-{sort_order:03d}"
