# migrations/env.py
from __future__ import annotations

import asyncio
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

# ===== корень проекта в sys.path (alembic запускается из корня, но не всегда) =====

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from config import settings  # noqa: E402
from db import Base  # noqa: E402
import models  # noqa: E402,F401  # регистрирует таблицы в Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    # -x db_url=... перекрывает DATABASE_URL (удобно для разовых прогонов)
    return context.get_x_argument(as_dictionary=True).get("db_url") or settings.database_url


def _configure_kwargs(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # SQLite не умеет ALTER для большинства операций
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Offline-режим: генерим SQL без подключения к базе."""
    url = _database_url()

    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        **_configure_kwargs(str(connection.engine.url)),
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Online-режим с async engine."""
    connectable: AsyncEngine = create_async_engine(
        _database_url(),
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
