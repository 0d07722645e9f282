"""File attachments and comments owned by audits and findings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hsse_audit.models.enums import AttachmentType
from hsse_audit.utils import time_utils


@dataclass(eq=False)
class AuditAttachment:
    """Evidence or supporting file attached to an audit."""

    file_name: str
    original_file_name: str
    content_type: str
    file_size: int
    file_path: str
    uploaded_by: str
    attachment_type: AttachmentType = AttachmentType.DOCUMENT
    description: str = ""
    category: str | None = None
    is_evidence: bool = False
    audit_item_number: str | None = None  # Checklist item this file supports
    uploaded_at: datetime = field(default_factory=time_utils.utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "original_file_name": self.original_file_name,
            "content_type": self.content_type,
            "file_size": self.file_size,
            "file_path": self.file_path,
            "uploaded_by": self.uploaded_by,
            "attachment_type": self.attachment_type.value,
            "description": self.description,
            "category": self.category,
            "is_evidence": self.is_evidence,
            "audit_item_number": self.audit_item_number,
            "uploaded_at": time_utils.to_iso(self.uploaded_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditAttachment":
        return cls(
            file_name=data["file_name"],
            original_file_name=data["original_file_name"],
            content_type=data["content_type"],
            file_size=data["file_size"],
            file_path=data["file_path"],
            uploaded_by=data["uploaded_by"],
            attachment_type=AttachmentType(data.get("attachment_type", "document")),
            description=data.get("description", ""),
            category=data.get("category"),
            is_evidence=data.get("is_evidence", False),
            audit_item_number=data.get("audit_item_number"),
            uploaded_at=time_utils.from_iso(data.get("uploaded_at")) or time_utils.utc_now(),
        )


@dataclass(eq=False)
class AuditComment:
    """Free-text remark on an audit, optionally about one item or finding."""

    comment: str
    commented_by: str
    category: str | None = None
    is_internal: bool = False
    audit_item_number: str | None = None
    finding_number: str | None = None
    commented_at: datetime = field(default_factory=time_utils.utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "comment": self.comment,
            "commented_by": self.commented_by,
            "category": self.category,
            "is_internal": self.is_internal,
            "audit_item_number": self.audit_item_number,
            "finding_number": self.finding_number,
            "commented_at": time_utils.to_iso(self.commented_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditComment":
        return cls(
            comment=data["comment"],
            commented_by=data["commented_by"],
            category=data.get("category"),
            is_internal=data.get("is_internal", False),
            audit_item_number=data.get("audit_item_number"),
            finding_number=data.get("finding_number"),
            commented_at=time_utils.from_iso(data.get("commented_at")) or time_utils.utc_now(),
        )


@dataclass(eq=False)
class FindingAttachment:
    """Evidence file for a finding (e.g. before/after photos)."""

    file_name: str
    original_file_name: str
    content_type: str
    file_size: int
    file_path: str
    uploaded_by: str
    description: str = ""
    uploaded_at: datetime = field(default_factory=time_utils.utc_now)

    def describe(self, description: str) -> None:
        """Replace the attachment description."""
        self.description = description

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "original_file_name": self.original_file_name,
            "content_type": self.content_type,
            "file_size": self.file_size,
            "file_path": self.file_path,
            "uploaded_by": self.uploaded_by,
            "description": self.description,
            "uploaded_at": time_utils.to_iso(self.uploaded_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FindingAttachment":
        return cls(
            file_name=data["file_name"],
            original_file_name=data["original_file_name"],
            content_type=data["content_type"],
            file_size=data["file_size"],
            file_path=data["file_path"],
            uploaded_by=data["uploaded_by"],
            description=data.get("description", ""),
            uploaded_at=time_utils.from_iso(data.get("uploaded_at")) or time_utils.utc_now(),
        )
