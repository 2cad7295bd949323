# handlers/errors.py
from __future__ import annotations

import logging

from aiogram import Bot, Dispatcher
from aiogram.types import ErrorEvent

from config import settings
from errors import ConnectionServiceError
from middlewares.logging_context import extract_user_chat

logger = logging.getLogger(__name__)


def build_admin_alert(
    exception: Exception,
    *,
    user_id: int | None = None,
    chat_id: int | None = None,
) -> str:
    """Короткое уведомление для админа."""
    text_lines = ["🔥 Ошибка в боте."]
    if user_id:
        text_lines.append(f"Пользователь: {user_id}")
    if chat_id:
        text_lines.append(f"Чат: {chat_id}")
    text_lines.append(f"Исключение: {type(exception).__name__}")
    if isinstance(exception, ConnectionServiceError):
        text_lines.append(f"Код: {exception.code} / {exception.reason or '-'}")
    return "\n".join(text_lines)


def setup_error_handlers(dp: Dispatcher, bot: Bot) -> None:
    @dp.errors()
    async def error_handler(event: ErrorEvent) -> None:
        exception = event.exception
        logger.error(
            "Unhandled error while processing update",
            exc_info=(type(exception), exception, exception.__traceback__),
        )

        if not settings.admin_chat_id:
            return

        user_id = None
        chat_id = None
        try:
            if event.update:
                user_id, chat_id = extract_user_chat(event.update)
        except Exception:
            logger.debug("Failed to extract update from ErrorEvent", exc_info=True)

        text = build_admin_alert(exception, user_id=user_id, chat_id=chat_id)

        try:
            await bot.send_message(chat_id=settings.admin_chat_id, text=text)
        except Exception:
            logger.debug("Failed to send error notification to admin", exc_info=True)
