# handlers/connection_requests.py
import logging

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message
from sqlalchemy.ext.asyncio import AsyncSession

from errors import ConnectionServiceError
from models import RequestSource, is_storable_id
from services import (
    NotificationSink,
    OptimisticAction,
    accept_connection_request,
    cancel_connection_request,
    decline_connection_request,
    run_optimistic,
    send_connection_request,
)
from views import (
    format_connection_error,
    request_in_flight_keyboard,
    sent_request_keyboard,
)

router = Router()
logger = logging.getLogger(__name__)


def _parse_callback_id(callback: CallbackQuery) -> int | None:
    _, raw_id = callback.data.split(":", 1)
    try:
        value = int(raw_id)
    except ValueError:
        value = None

    if value is None or not is_storable_id(value):
        logger.warning(
            "conn_callback_invalid_id user_id=%s data=%s",
            callback.from_user.id,
            callback.data,
        )
        return None
    return value


async def _edit_markup(message: Message, markup: InlineKeyboardMarkup | None) -> None:
    try:
        await message.edit_reply_markup(reply_markup=markup)
    except TelegramBadRequest:
        # «message is not modified» и удалённые сообщения - не критично
        logger.debug("conn_edit_markup_failed message_id=%s", message.message_id, exc_info=True)


async def _mark_processed(callback: CallbackQuery, suffix: str) -> None:
    """Убираем кнопки и дописываем итог в текст карточки."""
    message = callback.message
    base_text = message.html_text if message.text is not None else (message.caption or "")
    new_text = f"{base_text}\n\n{suffix}" if base_text else suffix

    try:
        if message.text is not None:
            await message.edit_text(new_text, reply_markup=None)
        else:
            await message.edit_caption(caption=new_text, reply_markup=None)
    except TelegramBadRequest:
        logger.debug("conn_mark_processed_failed message_id=%s", message.message_id, exc_info=True)


@router.callback_query(F.data.startswith("conn_accept:"))
async def conn_accept_callback(
    callback: CallbackQuery,
    session: AsyncSession,
    notifier: NotificationSink,
):
    request_id = _parse_callback_id(callback)
    if request_id is None:
        await callback.answer("Неверная заявка", show_alert=True)
        return

    try:
        await accept_connection_request(
            session,
            request_id=request_id,
            acting_user_id=callback.from_user.id,
            notifier=notifier,
        )
    except ConnectionServiceError as exc:
        await callback.answer(format_connection_error(exc), show_alert=True)
        return

    await _mark_processed(callback, "✅ Заявка принята.")
    await callback.answer("Заявка принята ✅", show_alert=False)


@router.callback_query(F.data.startswith("conn_reject:"))
async def conn_reject_callback(
    callback: CallbackQuery,
    session: AsyncSession,
    notifier: NotificationSink,
):
    request_id = _parse_callback_id(callback)
    if request_id is None:
        await callback.answer("Неверная заявка", show_alert=True)
        return

    try:
        await decline_connection_request(
            session,
            request_id=request_id,
            acting_user_id=callback.from_user.id,
            notifier=notifier,
        )
    except ConnectionServiceError as exc:
        await callback.answer(format_connection_error(exc), show_alert=True)
        return

    await _mark_processed(callback, "❌ Заявка отклонена.")
    await callback.answer("Отклонено ❌", show_alert=False)


@router.callback_query(F.data.startswith("conn_cancel:"))
async def conn_cancel_callback(
    callback: CallbackQuery,
    session: AsyncSession,
    notifier: NotificationSink,
):
    request_id = _parse_callback_id(callback)
    if request_id is None:
        await callback.answer("Неверная заявка", show_alert=True)
        return

    try:
        await cancel_connection_request(
            session,
            request_id=request_id,
            acting_user_id=callback.from_user.id,
            notifier=notifier,
        )
    except ConnectionServiceError as exc:
        await callback.answer(format_connection_error(exc), show_alert=True)
        return

    await _mark_processed(callback, "↩️ Заявка отозвана.")
    await callback.answer("Заявка отозвана", show_alert=False)


@router.callback_query(F.data.startswith("conn_send:"))
async def conn_send_callback(
    callback: CallbackQuery,
    session: AsyncSession,
    notifier: NotificationSink,
):
    """
    Кнопка «Отправить заявку» из /status.

    Кнопку меняем сразу (оптимистично), а если сервис вернул ошибку,
    возвращаем исходную клавиатуру.
    """
    target_id = _parse_callback_id(callback)
    if target_id is None:
        await callback.answer("Что-то пошло не так", show_alert=True)
        return

    message = callback.message
    original_markup = message.reply_markup

    async def apply() -> None:
        await _edit_markup(message, request_in_flight_keyboard())

    async def commit():
        return await send_connection_request(
            session,
            requester_id=callback.from_user.id,
            recipient_id=target_id,
            source=RequestSource.PROFILE_VIEW,
            notifier=notifier,
        )

    async def rollback() -> None:
        await _edit_markup(message, original_markup)

    try:
        req = await run_optimistic(
            OptimisticAction(apply=apply, commit=commit, rollback=rollback, name="conn_send")
        )
    except ConnectionServiceError as exc:
        await callback.answer(format_connection_error(exc), show_alert=True)
        return

    await _edit_markup(message, sent_request_keyboard(req.id))
    await callback.answer("Заявка отправлена ✅", show_alert=False)


@router.callback_query(F.data == "conn_noop")
async def conn_noop_callback(callback: CallbackQuery):
    await callback.answer()
