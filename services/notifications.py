# services/notifications.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from aiogram import Bot

logger = logging.getLogger(__name__)


class EventType(str, enum.Enum):
    CONNECTION_REQUESTED = "ConnectionRequested"
    CONNECTION_ACCEPTED = "ConnectionAccepted"
    CONNECTION_DECLINED = "ConnectionDeclined"
    # информационные - доставка не обязательна
    CONNECTION_CANCELLED = "ConnectionCancelled"
    CONNECTION_REMOVED = "ConnectionRemoved"


@dataclass(frozen=True)
class ConnectionEvent:
    type: EventType
    actor_id: int
    target_id: int
    request_id: int | None
    timestamp: datetime = field(default_factory=datetime.utcnow)
    # Текст приветствия / заметки - только для отрисовки, ядро его не читает
    message: str | None = None


@runtime_checkable
class NotificationSink(Protocol):
    async def emit(self, event: ConnectionEvent) -> None: ...


class LoggingNotificationSink:
    """Сток по умолчанию: ничего не доставляет, просто пишет событие в лог."""

    async def emit(self, event: ConnectionEvent) -> None:
        logger.info(
            "connection_event type=%s actor_id=%s target_id=%s request_id=%s",
            event.type.value,
            event.actor_id,
            event.target_id,
            event.request_id,
        )


class TelegramNotificationSink:
    """
    Доставка событий в Telegram.

    Кому пишем:
    - ConnectionRequested - получателю, с кнопками «Принять / Отклонить»
    - ConnectionAccepted / ConnectionDeclined - отправителю заявки
    - Cancelled / Removed - второй стороне, коротким сообщением
    """

    def __init__(self, bot: Bot):
        self.bot = bot

    async def emit(self, event: ConnectionEvent) -> None:
        # views сами импортируют EventType отсюда
        from views import format_connection_event, received_request_keyboard

        text = format_connection_event(event)
        reply_markup = None

        if event.type is EventType.CONNECTION_REQUESTED and event.request_id:
            reply_markup = received_request_keyboard(event.request_id)

        await self.bot.send_message(
            chat_id=event.target_id,
            text=text,
            reply_markup=reply_markup,
        )
        logger.info(
            "connection_event_delivered type=%s chat_id=%s request_id=%s",
            event.type.value,
            event.target_id,
            event.request_id,
        )


async def dispatch_event(
    notifier: NotificationSink,
    event: ConnectionEvent,
) -> None:
    """
    Отдаём событие в сток. Вызывается ТОЛЬКО после успешного коммита.

    Если доставка упала - переход уже зафиксирован и откатить его нельзя,
    поэтому логируем стек и не пробрасываем ошибку вызывающему.
    """
    try:
        await notifier.emit(event)
    except Exception:
        logger.exception(
            "connection_event_emit_failed type=%s actor_id=%s target_id=%s request_id=%s",
            event.type.value,
            event.actor_id,
            event.target_id,
            event.request_id,
        )
