# db.py
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config import settings


class Base(DeclarativeBase):
    pass


def build_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    return create_async_engine(
        url or settings.database_url,
        echo=False,  # можно включить True для дебага
        **kwargs,
    )


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        expire_on_commit=False,
        class_=AsyncSession,
    )


engine = build_engine()

async_session_maker = build_session_maker(engine)
