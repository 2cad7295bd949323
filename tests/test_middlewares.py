from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.types import Message, Update
from sqlalchemy.ext.asyncio import AsyncSession

from logging_config import update_id_var, user_id_var
from middlewares import DbSessionMiddleware, LoggingContextMiddleware


@pytest.mark.asyncio
async def test_db_middleware_injects_session(session_maker):
    middleware = DbSessionMiddleware(session_maker)
    seen = {}

    async def handler(event, data):
        seen["session"] = data["session"]
        return "ok"

    assert await middleware(handler, MagicMock(), {}) == "ok"
    assert isinstance(seen["session"], AsyncSession)


@pytest.mark.asyncio
async def test_db_middleware_answers_user_on_crash(session_maker):
    middleware = DbSessionMiddleware(session_maker)
    message = MagicMock(spec=Message)
    message.answer = AsyncMock()

    async def handler(event, data):
        raise RuntimeError("boom")

    assert await middleware(handler, message, {}) is None
    message.answer.assert_awaited_once()


@pytest.mark.asyncio
async def test_logging_context_is_set_per_update():
    seen = {}

    async def handler(event, data):
        seen["update_id"] = update_id_var.get()
        seen["user_id"] = user_id_var.get()

    await LoggingContextMiddleware()(handler, Update(update_id=5), {})

    assert seen == {"update_id": "5", "user_id": "-"}
    assert update_id_var.get() == "-"
