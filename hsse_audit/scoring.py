"""Risk aggregation and score banding for audits.

Both computations are pure functions of their inputs so they can be reused
by the aggregate, by reporting code and by tests without an audit instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import TYPE_CHECKING, Iterable

from hsse_audit.models.enums import AuditItemStatus, AuditScore, FindingSeverity, RiskLevel

if TYPE_CHECKING:
    from hsse_audit.models.audit_item import AuditItem

# Lower bound (inclusive) of each band, highest first.
SCORE_BANDS: tuple[tuple[Decimal, AuditScore], ...] = (
    (Decimal("90"), AuditScore.EXCELLENT),
    (Decimal("80"), AuditScore.GOOD),
    (Decimal("70"), AuditScore.SATISFACTORY),
    (Decimal("60"), AuditScore.NEEDS_IMPROVEMENT),
)

SEVERITY_RISK: dict[FindingSeverity, RiskLevel] = {
    FindingSeverity.CRITICAL: RiskLevel.CRITICAL,
    FindingSeverity.MAJOR: RiskLevel.HIGH,
    FindingSeverity.MODERATE: RiskLevel.MEDIUM,
    FindingSeverity.MINOR: RiskLevel.LOW,
}

# Three or more major findings escalate an audit to critical risk.
MAJOR_ESCALATION_COUNT = 3

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of rolling up completed item points."""

    total_possible_points: int
    achieved_points: int
    percentage: Decimal
    band: AuditScore


def severity_to_risk(severity: FindingSeverity) -> RiskLevel:
    """Map a single finding's severity to its risk level."""
    return SEVERITY_RISK.get(severity, RiskLevel.LOW)


def requires_verification(severity: FindingSeverity) -> bool:
    """Major and critical findings need a verification sign-off before closing."""
    return severity >= FindingSeverity.MAJOR


def aggregate_risk(severities: Iterable[FindingSeverity]) -> RiskLevel:
    """Derive an audit's overall risk level from its finding severities.

    Rules are evaluated top to bottom and the first match wins:

    1. any critical finding -> critical
    2. no critical, three or more major -> critical
    3. no critical, at least one major -> high
    4. no critical or major, worst is moderate -> medium
    5. otherwise (nothing, or only minor) -> low
    """
    severities = list(severities)
    if not severities:
        return RiskLevel.LOW

    critical = sum(1 for s in severities if s == FindingSeverity.CRITICAL)
    major = sum(1 for s in severities if s == FindingSeverity.MAJOR)
    max_severity = max(severities)

    if critical > 0:
        return RiskLevel.CRITICAL
    if major >= MAJOR_ESCALATION_COUNT:
        return RiskLevel.CRITICAL
    if major >= 1 and max_severity == FindingSeverity.MAJOR:
        return RiskLevel.HIGH
    if major == 0 and max_severity == FindingSeverity.MODERATE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def round_percentage(numerator: int, denominator: int) -> Decimal:
    """Return ``numerator / denominator * 100`` rounded half-even to 2 places."""
    value = Decimal(numerator) / Decimal(denominator) * 100
    return value.quantize(_CENT, rounding=ROUND_HALF_EVEN)


def score_band(percentage: Decimal) -> AuditScore:
    for threshold, band in SCORE_BANDS:
        if percentage >= threshold:
            return band
    return AuditScore.UNSATISFACTORY


def calculate_score(items: Iterable["AuditItem"]) -> ScoreResult | None:
    """Roll up points of completed items into a percentage and band.

    Only items in ``COMPLETED`` status count. Unset ``max_points`` counts as
    1 and unset ``actual_points`` as 0. Returns None when no item is
    completed or when the possible total is zero.
    """
    completed = [i for i in items if i.status == AuditItemStatus.COMPLETED]
    if not completed:
        return None

    total_possible = sum(i.max_points if i.max_points is not None else 1 for i in completed)
    achieved = sum(i.actual_points if i.actual_points is not None else 0 for i in completed)
    if total_possible == 0:
        return None

    percentage = round_percentage(achieved, total_possible)
    return ScoreResult(
        total_possible_points=total_possible,
        achieved_points=achieved,
        percentage=percentage,
        band=score_band(percentage),
    )
