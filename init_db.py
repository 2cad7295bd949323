# init_db.py
import asyncio
import logging

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

from db import engine as default_engine

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("connection_requests", "connection_edges", "connection_blocks")


async def init_db(engine: AsyncEngine | None = None) -> None:
    """
    Проверка подключения к базе и наличия таблиц графа.

    ВАЖНО:
    - Схема БД создаётся и изменяется ТОЛЬКО через Alembic (`alembic upgrade head`).
    - Здесь мы не создаём таблицы, а только падаем с понятной ошибкой,
      если миграции не накатили.
    """
    engine = engine or default_engine

    async with engine.connect() as conn:
        table_names = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).get_table_names()
        )

    missing = [name for name in REQUIRED_TABLES if name not in table_names]
    if missing:
        raise RuntimeError(
            f"Missing tables: {', '.join(missing)}. Run `alembic upgrade head` first."
        )

    logger.info("db_check_ok tables=%s", ",".join(REQUIRED_TABLES))


if __name__ == "__main__":
    # Можно выполнить как:
    #   python -m init_db
    asyncio.run(init_db())
