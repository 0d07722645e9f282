"""CLI commands for running audit engine workers."""

import asyncio
import logging

import click

from config.settings import settings
from hsse_audit.db import dispose_engine, ping_db
from hsse_audit.persistence.audit_store import AuditStore, ensure_schema
from hsse_audit.tracing import setup_tracing
from hsse_audit.workers.overdue import OverdueWorker


def _require_database() -> None:
    if not settings.database_url:
        raise click.ClickException(
            "Database not configured. Set the DATABASE_URL environment variable."
        )


def _get_store() -> AuditStore:
    """Create an AuditStore from the configured database."""
    _require_database()
    return AuditStore()


async def _run_and_dispose(coro):
    try:
        return await coro
    finally:
        await dispose_engine()


@click.group()
def workers():
    """Run worker processes for the audit lifecycle engine."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s"
    )
    if settings.tracing_enabled:
        setup_tracing(settings.log_level)


@workers.command("init-db")
def init_db():
    """Create the audit tables if they do not exist."""
    _require_database()
    asyncio.run(_run_and_dispose(ensure_schema()))
    click.echo("Schema ready")


@workers.command("check-db")
def check_db():
    """Exit non-zero when the audit database cannot be reached."""
    _require_database()
    if not asyncio.run(_run_and_dispose(ping_db())):
        raise click.ClickException("Audit database is not reachable")
    click.echo("Database OK")


@workers.command()
@click.option("--once", is_flag=True, help="Process a single batch and exit")
@click.option("--interval", type=int, default=None, help="Poll interval in seconds")
def overdue(once: bool, interval: int | None):
    """Run the overdue worker.

    Scheduled audits whose date has passed are marked overdue and the
    resulting events are published after each save.
    """
    worker = OverdueWorker(_get_store(), poll_interval=interval)
    if once:
        count = asyncio.run(_run_and_dispose(worker.run_once()))
        click.echo(f"Marked {count} audit(s) overdue")
        return
    try:
        asyncio.run(_run_and_dispose(worker.run_loop()))
    except KeyboardInterrupt:
        click.echo("\nShutting down overdue worker...")


if __name__ == "__main__":
    workers()
