"""SQLAlchemy models for audit persistence."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base."""


class AuditRecord(Base):
    """Audit aggregate row.

    Queryable attributes live in columns; the full aggregate (items,
    findings, attachments, comments) is kept in ``snapshot``.
    """

    __tablename__ = "audit"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    audit_number: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(200))
    audit_type: Mapped[str] = mapped_column(String(32))
    category: Mapped[str] = mapped_column(String(32))
    priority: Mapped[str] = mapped_column(String(16))
    status: Mapped[str] = mapped_column(String(32), index=True)
    risk_level: Mapped[str] = mapped_column(String(16))
    auditor_id: Mapped[int] = mapped_column(Integer, index=True)
    scheduled_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    started_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    overall_score: Mapped[str | None] = mapped_column(String(32), nullable=True)
    score_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    is_regulatory: Mapped[bool] = mapped_column(default=False)
    finding_count: Mapped[int] = mapped_column(default=0)
    item_count: Mapped[int] = mapped_column(default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    snapshot: Mapped[dict] = mapped_column(JSON, default=dict)
    # Bumped by every save; an UPDATE only matches the version it was read at.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}
