"""Closed enumerations for audits, checklist items and findings."""

from enum import Enum


class OrderedEnum(str, Enum):
    """String enum whose members compare by declaration order.

    ``str`` comparisons would order members alphabetically, so every rich
    comparison is overridden to use the member's position instead.
    """

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def _check(self, other: object) -> bool:
        return type(other) is type(self)

    def __lt__(self, other):
        if not self._check(other):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not self._check(other):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not self._check(other):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not self._check(other):
            return NotImplemented
        return self.rank >= other.rank


class AuditType(str, Enum):
    """Kind of compliance audit; drives the audit number prefix."""

    SAFETY = "safety"
    ENVIRONMENTAL = "environmental"
    EQUIPMENT = "equipment"
    PROCESS = "process"
    COMPLIANCE = "compliance"
    FIRE = "fire"
    CHEMICAL = "chemical"
    ERGONOMIC = "ergonomic"
    EMERGENCY = "emergency"
    MANAGEMENT = "management"
    OTHER = "other"


class AuditCategory(str, Enum):
    """Why the audit is being carried out."""

    ROUTINE = "routine"
    PLANNED = "planned"
    UNPLANNED = "unplanned"
    REGULATORY = "regulatory"
    INTERNAL = "internal"
    EXTERNAL = "external"
    INCIDENT = "incident"
    MAINTENANCE = "maintenance"


class AuditPriority(OrderedEnum):
    """Scheduling priority of an audit."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AuditStatus(str, Enum):
    """Lifecycle state of an audit."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"  # Advisory; behaves like SCHEDULED for start/cancel
    CANCELLED = "cancelled"
    ARCHIVED = "archived"
    UNDER_REVIEW = "under_review"


class AuditItemType(str, Enum):
    """Answer format of a checklist item."""

    YES_NO = "yes_no"
    TEXT = "text"
    NUMBER = "number"
    MULTIPLE_CHOICE = "multiple_choice"
    CHECKLIST = "checklist"
    PHOTO = "photo"
    MEASUREMENT = "measurement"
    RATING = "rating"


class AuditItemStatus(str, Enum):
    """Assessment state of a checklist item."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"  # Assessed and compliant
    NON_COMPLIANT = "non_compliant"
    NOT_APPLICABLE = "not_applicable"
    REQUIRES_FOLLOW_UP = "requires_follow_up"  # Non-compliant with corrective action


class FindingType(str, Enum):
    """Nature of a finding raised during an audit."""

    NON_CONFORMANCE = "non_conformance"
    OBSERVATION = "observation"
    IMPROVEMENT_OPPORTUNITY = "improvement_opportunity"
    POSITIVE_FINDING = "positive_finding"
    CRITICAL_NON_CONFORMANCE = "critical_non_conformance"


class FindingSeverity(OrderedEnum):
    """Seriousness of a finding, ordered minor < moderate < major < critical."""

    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"


class FindingStatus(str, Enum):
    """Lifecycle state of a finding."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    VERIFIED = "verified"
    CLOSED = "closed"


class RiskLevel(OrderedEnum):
    """Risk classification of a finding or of a whole audit."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AuditScore(str, Enum):
    """Qualitative band of an audit's score percentage."""

    EXCELLENT = "excellent"
    GOOD = "good"
    SATISFACTORY = "satisfactory"
    NEEDS_IMPROVEMENT = "needs_improvement"
    UNSATISFACTORY = "unsatisfactory"


class AttachmentType(str, Enum):
    """Kind of file attached to an audit."""

    EVIDENCE = "evidence"
    CHECKLIST = "checklist"
    REPORT = "report"
    PHOTO = "photo"
    DOCUMENT = "document"
    CERTIFICATE = "certificate"
    STANDARD = "standard"
    PROCEDURE = "procedure"
    OTHER = "other"
