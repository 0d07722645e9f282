import pytest

from hsse_audit.db import _normalize_db_url, create_engine_for


@pytest.mark.parametrize(
    "url,expected",
    [
        ("postgres://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
        ("postgresql://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
        ("postgresql+asyncpg://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
        ("sqlite:///audits.db", "sqlite+aiosqlite:///audits.db"),
        ("sqlite+aiosqlite:///audits.db", "sqlite+aiosqlite:///audits.db"),
    ],
)
def test_normalize_db_url(url, expected):
    assert _normalize_db_url(url) == expected


@pytest.mark.asyncio
async def test_sqlite_engine_uses_aiosqlite(tmp_path):
    engine = create_engine_for(f"sqlite:///{tmp_path / 'audits.db'}")
    try:
        assert engine.url.drivername == "sqlite+aiosqlite"
    finally:
        await engine.dispose()
