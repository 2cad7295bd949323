import logging
from unittest.mock import AsyncMock

import pytest

from services.notifications import (
    ConnectionEvent,
    EventType,
    LoggingNotificationSink,
    NotificationSink,
    TelegramNotificationSink,
    dispatch_event,
)


def _event(event_type=EventType.CONNECTION_REQUESTED, **kwargs):
    defaults = dict(type=event_type, actor_id=1, target_id=2, request_id=10)
    defaults.update(kwargs)
    return ConnectionEvent(**defaults)


def test_sinks_satisfy_protocol():
    assert isinstance(LoggingNotificationSink(), NotificationSink)
    assert isinstance(TelegramNotificationSink(bot=AsyncMock()), NotificationSink)


@pytest.mark.asyncio
async def test_telegram_sink_sends_request_with_buttons():
    bot = AsyncMock()
    sink = TelegramNotificationSink(bot)

    await sink.emit(_event(message="Давай <дружить>"))

    bot.send_message.assert_awaited_once()
    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == 2
    assert "&lt;дружить&gt;" in kwargs["text"]

    buttons = [b.callback_data for row in kwargs["reply_markup"].inline_keyboard for b in row]
    assert buttons == ["conn_accept:10", "conn_reject:10"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "event_type",
    [
        EventType.CONNECTION_ACCEPTED,
        EventType.CONNECTION_DECLINED,
        EventType.CONNECTION_CANCELLED,
        EventType.CONNECTION_REMOVED,
    ],
)
async def test_telegram_sink_other_events_have_no_buttons(event_type):
    bot = AsyncMock()

    await TelegramNotificationSink(bot).emit(_event(event_type))

    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == 2
    assert kwargs["reply_markup"] is None


@pytest.mark.asyncio
async def test_dispatch_event_logs_sink_failure(caplog):
    bot = AsyncMock()
    bot.send_message.side_effect = RuntimeError("bot was blocked by the user")

    with caplog.at_level(logging.ERROR, logger="services.notifications"):
        await dispatch_event(TelegramNotificationSink(bot), _event())

    assert "connection_event_emit_failed" in caplog.text


@pytest.mark.asyncio
async def test_logging_sink_writes_event(caplog):
    with caplog.at_level(logging.INFO, logger="services.notifications"):
        await dispatch_event(LoggingNotificationSink(), _event(EventType.CONNECTION_REMOVED))

    assert "type=ConnectionRemoved" in caplog.text
