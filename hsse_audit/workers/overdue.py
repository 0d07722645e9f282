"""Overdue worker - flags scheduled audits whose date has passed."""

from __future__ import annotations

import asyncio
import logging

from config.settings import settings
from hsse_audit.models import ConcurrencyConflict, IllegalStateTransition
from hsse_audit.persistence.audit_store import AuditStore

logger = logging.getLogger(__name__)


class OverdueWorker:
    """Marks past-due scheduled audits as overdue and persists them.

    Saving publishes the resulting ``AuditOverdue`` events to reminder and
    escalation subscribers.
    """

    def __init__(
        self,
        store: AuditStore,
        poll_interval: int | None = None,
        batch_size: int | None = None,
    ):
        self.store = store
        self.poll_interval = poll_interval or settings.overdue_poll_interval
        self.batch_size = batch_size or settings.overdue_batch_size

    async def run_once(self) -> int:
        """Process one batch of past-due audits.

        Returns:
            Number of audits marked overdue.
        """
        candidates = await self.store.list_past_due(limit=self.batch_size)
        if not candidates:
            return 0

        marked = 0
        for audit in candidates:
            try:
                if not audit.mark_overdue():
                    continue
            except IllegalStateTransition:
                # Started or cancelled since it was listed.
                logger.debug("Skipping audit=%s status=%s", audit.audit_number, audit.status.value)
                continue
            try:
                await self.store.save(audit)
            except ConcurrencyConflict:
                # A user command saved it first; that copy wins.
                logger.info("Audit changed since listed, skipping: audit=%s", audit.audit_number)
                continue
            logger.info("Audit marked overdue: audit=%s", audit.audit_number)
            marked += 1

        return marked

    async def run_loop(self) -> None:
        """Poll for past-due audits until cancelled."""
        logger.info("Overdue worker started")
        while True:
            try:
                count = await self.run_once()
                if count == 0:
                    await asyncio.sleep(self.poll_interval)
            except asyncio.CancelledError:
                logger.info("Overdue worker stopped")
                raise
            except Exception:
                logger.exception("Overdue worker error")
                await asyncio.sleep(self.poll_interval)
