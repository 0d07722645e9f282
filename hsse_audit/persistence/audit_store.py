"""Async persistence for audit aggregates.

Events queued on an aggregate are published only after the transaction that
stores it has committed; a failed persist publishes nothing and leaves the
aggregate (id, item numbers, event queue) as it was.

Saves are optimistic: each row carries a version, and a copy loaded before
another save committed is rejected with ``ConcurrencyConflict``.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from hsse_audit.db import get_async_engine, get_sessionmaker
from hsse_audit.events.dispatcher import EventDispatcher, get_dispatcher
from hsse_audit.models import Audit, AuditStatus, ConcurrencyConflict
from hsse_audit.persistence.models import AuditRecord, Base
from hsse_audit.utils import time_utils

logger = logging.getLogger(__name__)


async def ensure_schema(engine=None) -> None:
    """Create tables if they do not exist."""
    async with (engine or get_async_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _write_record(record: AuditRecord, audit: Audit, version: int) -> None:
    record.audit_number = audit.audit_number
    record.title = audit.title
    record.audit_type = audit.audit_type.value
    record.category = audit.category.value
    record.priority = audit.priority.value
    record.status = audit.status.value
    record.risk_level = audit.risk_level.value
    record.auditor_id = audit.auditor_id
    record.scheduled_date = audit.scheduled_date
    record.started_date = audit.started_date
    record.completed_date = audit.completed_date
    record.overall_score = audit.overall_score.value if audit.overall_score else None
    record.score_percentage = audit.score_percentage
    record.is_regulatory = audit.is_regulatory
    record.finding_count = audit.findings_count
    record.item_count = audit.items_count
    record.created_at = audit.created_at
    record.modified_at = audit.modified_at
    record.version = version
    record.snapshot = {**audit.to_dict(), "version": version}


def _load(record: AuditRecord) -> Audit:
    return Audit.from_dict({**record.snapshot, "version": record.version})


class AuditStore:
    """Loads and saves whole audit aggregates."""

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession] | None = None,
        dispatcher: EventDispatcher | None = None,
    ):
        self.sessionmaker = sessionmaker or get_sessionmaker()
        self.dispatcher = dispatcher or get_dispatcher()

    async def save(self, audit: Audit) -> int:
        """Persist the aggregate, then publish its queued events.

        The first save assigns the audit its id. The id, renumbered items and
        new version are bound to ``audit`` only once the transaction commits.

        Args:
            audit: The aggregate to store.

        Returns:
            Number of events published.

        Raises:
            ConcurrencyConflict: If the stored audit changed after ``audit``
                was loaded.
        """
        new_version = audit.version + 1
        try:
            async with self.sessionmaker() as session:
                async with session.begin():
                    record = None
                    if audit.id is not None:
                        record = await session.get(AuditRecord, audit.id, with_for_update=True)
                    if record is None:
                        if audit.version:
                            raise ConcurrencyConflict(audit.audit_number, audit.version, None)
                        record = AuditRecord(id=audit.id)
                        _write_record(record, audit, new_version)
                        session.add(record)
                        await session.flush()
                    elif record.version != audit.version:
                        raise ConcurrencyConflict(
                            audit.audit_number, audit.version, record.version
                        )

                    staged = audit
                    if audit.id is None:
                        # Number the children on a copy until the commit succeeds.
                        staged = Audit.from_dict(audit.to_dict())
                        staged.assign_id(record.id)
                    _write_record(record, staged, new_version)
                    audit_id = record.id
        except StaleDataError as exc:
            raise ConcurrencyConflict(audit.audit_number, audit.version, None) from exc

        audit.mark_persisted(audit_id, new_version)
        logger.info(
            "Saved audit=%s id=%s version=%s status=%s",
            audit.audit_number,
            audit.id,
            audit.version,
            audit.status.value,
        )
        return self.dispatcher.publish_all(audit.pull_domain_events())

    async def get(self, audit_id: int) -> Audit | None:
        async with self.sessionmaker() as session:
            record = await session.get(AuditRecord, audit_id)
            if record is None:
                return None
            return _load(record)

    async def get_by_number(self, audit_number: str) -> Audit | None:
        async with self.sessionmaker() as session:
            result = await session.execute(
                select(AuditRecord).where(AuditRecord.audit_number == audit_number)
            )
            record = result.scalar_one_or_none()
            return _load(record) if record else None

    async def list_by_status(self, status: AuditStatus, limit: int = 100) -> list[Audit]:
        async with self.sessionmaker() as session:
            result = await session.execute(
                select(AuditRecord)
                .where(AuditRecord.status == status.value)
                .order_by(AuditRecord.scheduled_date)
                .limit(limit)
            )
            return [_load(r) for r in result.scalars()]

    async def list_past_due(self, now: datetime | None = None, limit: int = 100) -> list[Audit]:
        """Scheduled audits whose scheduled date has passed."""
        now = now or time_utils.utc_now()
        async with self.sessionmaker() as session:
            result = await session.execute(
                select(AuditRecord)
                .where(AuditRecord.status == AuditStatus.SCHEDULED.value)
                .where(AuditRecord.scheduled_date < now)
                .order_by(AuditRecord.scheduled_date)
                .limit(limit)
            )
            return [_load(r) for r in result.scalars()]
