# middlewares/db.py
import logging
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject, Update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db import async_session_maker

logger = logging.getLogger(__name__)


def _unwrap_update(event: TelegramObject) -> TelegramObject:
    # outer-middleware на dp.update получает Update, отвечать надо в message / callback
    if isinstance(event, Update):
        return event.message or event.callback_query or event
    return event


class DbSessionMiddleware(BaseMiddleware):
    """
    Своя сессия БД на каждый апдейт.

    Любая необработанная ошибка в хендлере:
    - откатывает незакрытую транзакцию
    - логируется через logger.exception(...)
    - НЕ роняет бота, пользователю уходит короткое сообщение
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession] | None = None):
        self.session_maker = session_maker or async_session_maker

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        async with self.session_maker() as session:
            data["session"] = session
            try:
                return await handler(event, data)
            except Exception:
                logger.exception("Unhandled error while processing update: %r", event)
                await session.rollback()

                target = _unwrap_update(event)
                try:
                    if isinstance(target, CallbackQuery):
                        await target.answer(
                            "Что-то пошло не так, мы уже чиним 🛠",
                            show_alert=True,
                        )
                    elif isinstance(target, Message):
                        await target.answer(
                            "Упс, случилась ошибка. Попробуй ещё раз чуть позже."
                        )
                except Exception:
                    logger.exception("Failed to send error notification to user")

                return None
