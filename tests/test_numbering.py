import re
from datetime import datetime, timezone

import pytest

from hsse_audit import numbering
from hsse_audit.models import AuditType

WHEN = datetime(2024, 3, 9, 23, 59, tzinfo=timezone.utc)


class TestAuditNumbers:
    @pytest.mark.parametrize(
        "audit_type,prefix",
        [
            (AuditType.SAFETY, "SA"),
            (AuditType.ENVIRONMENTAL, "EA"),
            (AuditType.EQUIPMENT, "EQ"),
            (AuditType.COMPLIANCE, "CA"),
            (AuditType.FIRE, "FA"),
            (AuditType.CHEMICAL, "CH"),
            (AuditType.ERGONOMIC, "ER"),
            (AuditType.EMERGENCY, "EM"),
            (AuditType.MANAGEMENT, "MA"),
            (AuditType.PROCESS, "PA"),
            (AuditType.OTHER, "AU"),
        ],
    )
    def test_prefix(self, audit_type, prefix):
        number = numbering.generate_audit_number(audit_type, now=WHEN)
        assert re.fullmatch(rf"{prefix}-20240309-[0-9A-F]{{6}}", number)

    def test_numbers_are_unique(self):
        numbers = {numbering.generate_audit_number(AuditType.FIRE, now=WHEN) for _ in range(50)}
        assert len(numbers) == 50


class TestOtherNumbers:
    def test_finding_number(self):
        assert re.fullmatch(r"FND-20240309-[0-9A-F]{6}", numbering.generate_finding_number(now=WHEN))

    def test_item_number_padding(self):
        assert numbering.generate_item_number(42, 7) == "AI-000042-007"
        assert numbering.generate_item_number(None, 1) == "AI-000000-001"
        assert numbering.generate_item_number(1234567, 1000) == "AI-1234567-1000"
