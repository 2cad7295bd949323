import pytest

from db import build_engine
from init_db import init_db


@pytest.mark.asyncio
async def test_init_db_accepts_migrated_schema(engine):
    await init_db(engine)


@pytest.mark.asyncio
async def test_init_db_reports_missing_tables(tmp_path):
    empty = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    try:
        with pytest.raises(RuntimeError, match="alembic upgrade head"):
            await init_db(empty)
    finally:
        await empty.dispose()
