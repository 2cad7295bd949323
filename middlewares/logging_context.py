# middlewares/logging_context.py
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from aiogram import BaseMiddleware
from aiogram.types import Update

from logging_config import chat_id_var, update_id_var, user_id_var

logger = logging.getLogger(__name__)


def extract_user_chat(update: Update) -> tuple[Optional[int], Optional[int]]:
    """user_id / chat_id из апдейта (message, callback_query или inline_query)."""
    user_id = None
    chat_id = None

    if update.message:
        if update.message.from_user:
            user_id = update.message.from_user.id
        if update.message.chat:
            chat_id = update.message.chat.id
    elif update.callback_query:
        cq = update.callback_query
        if cq.from_user:
            user_id = cq.from_user.id
        if cq.message and cq.message.chat:
            chat_id = cq.message.chat.id
    elif update.inline_query:
        if update.inline_query.from_user:
            user_id = update.inline_query.from_user.id

    return user_id, chat_id


class LoggingContextMiddleware(BaseMiddleware):
    """
    Заполняет contextvars user_id / chat_id / update_id для всех логов,
    которые пишутся во время обработки одного апдейта.
    """

    async def __call__(
        self,
        handler: Callable[[Update, Dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: Dict[str, Any],
    ) -> Any:
        user_id = "-"
        chat_id = "-"
        update_id = "-"

        if isinstance(event, Update):
            update_id = str(event.update_id)
            try:
                raw_user_id, raw_chat_id = extract_user_chat(event)
            except Exception:
                logger.debug("Failed to extract user/chat from Update", exc_info=True)
            else:
                if raw_user_id is not None:
                    user_id = str(raw_user_id)
                if raw_chat_id is not None:
                    chat_id = str(raw_chat_id)

        token_user = user_id_var.set(user_id)
        token_chat = chat_id_var.set(chat_id)
        token_update = update_id_var.set(update_id)

        try:
            return await handler(event, data)
        finally:
            # возвращаем старые значения, чтобы не течь между апдейтами
            user_id_var.reset(token_user)
            chat_id_var.reset(token_chat)
            update_id_var.reset(token_update)
