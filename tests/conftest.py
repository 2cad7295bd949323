"""
Shared pytest fixtures
======================

Каждый тест получает свою SQLite-базу в tmp_path (файл, не :memory:),
чтобы у параллельных сессий были отдельные соединения и настоящие блокировки.
"""

import pytest

import models  # noqa: F401  # регистрирует таблицы в Base.metadata
from config import settings
from db import Base, build_engine, build_session_maker


class RecordingSink:
    """Сток уведомлений для тестов: просто копит события."""

    def __init__(self):
        self.events = []

    async def emit(self, event):
        self.events.append(event)

    def types(self):
        return [event.type for event in self.events]


class FailingSink:
    async def emit(self, event):
        raise RuntimeError("delivery is down")


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'graph.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def failing_sink():
    return FailingSink()


@pytest.fixture(autouse=True)
def no_daily_limit(monkeypatch):
    # лимит проверяем отдельными тестами
    monkeypatch.setattr(settings, "max_connection_requests_per_day", 0)
