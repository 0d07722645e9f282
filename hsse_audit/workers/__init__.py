"""Background workers for time-triggered audit transitions."""

from hsse_audit.workers.overdue import OverdueWorker

__all__ = ["OverdueWorker"]
