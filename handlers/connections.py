# handlers/connections.py
import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from errors import ConnectionServiceError
from models import PendingDirection, RequestSource, is_storable_id
from services import (
    ConnectionStatus,
    NotificationSink,
    block_user,
    compute_mutual_connections,
    count_pending_requests,
    get_connection,
    get_connection_status,
    list_connections,
    list_pending_requests,
    remove_connection,
    send_connection_request,
    unblock_user,
    update_connection_note,
    update_connection_tags,
)
from views import (
    MENU_CONNECTIONS,
    MENU_RECEIVED,
    MENU_SENT,
    format_connection_error,
    format_connection_status,
    format_connections_list,
    format_mutual_connections,
    format_pending_header,
    format_request_card,
    html_safe,
    received_request_keyboard,
    send_request_keyboard,
    sent_request_keyboard,
)

router = Router()
logger = logging.getLogger(__name__)


def _parse_user_id(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if is_storable_id(value) else None


async def _reply_usage(message: Message, command: str, extra: str = "") -> None:
    await message.answer(
        f"Формат такой:\n/{command} &lt;id пользователя&gt;{extra}"
    )


# ===== отправка заявки =====


@router.message(Command("connect"))
async def cmd_connect(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    notifier: NotificationSink,
):
    parts = (command.args or "").split(maxsplit=1)
    target_id = _parse_user_id(parts[0] if parts else None)
    if target_id is None:
        await _reply_usage(message, "connect", " [сообщение]")
        return

    greeting = parts[1] if len(parts) > 1 else None

    logger.info(
        "cmd_connect_called from_id=%s to_id=%s has_greeting=%s",
        message.from_user.id,
        target_id,
        bool(greeting),
    )

    try:
        req = await send_connection_request(
            session,
            requester_id=message.from_user.id,
            recipient_id=target_id,
            message=greeting,
            source=RequestSource.SEARCH,
            notifier=notifier,
        )
    except ConnectionServiceError as exc:
        await message.answer(format_connection_error(exc))
        return

    await message.answer(
        "Заявка отправлена ✅\nКонтакты откроются, когда её примут.",
        reply_markup=sent_request_keyboard(req.id),
    )


# ===== списки заявок =====


async def _show_pending(
    message: Message,
    session: AsyncSession,
    direction: PendingDirection,
) -> None:
    user_id = message.from_user.id

    total = await count_pending_requests(session, user_id=user_id, direction=direction)
    await message.answer(format_pending_header(direction.value, total))
    if not total:
        return

    requests = await list_pending_requests(
        session,
        user_id=user_id,
        direction=direction,
        limit=settings.connections_page_size,
    )

    for req in requests:
        if direction is PendingDirection.RECEIVED:
            markup = received_request_keyboard(req.id)
        else:
            markup = sent_request_keyboard(req.id)
        await message.answer(
            format_request_card(req, viewer_id=user_id),
            reply_markup=markup,
        )

    logger.info(
        "pending_requests_shown user_id=%s direction=%s total=%s shown=%s",
        user_id,
        direction.value,
        total,
        len(requests),
    )


@router.message(Command("requests"))
@router.message(F.text == MENU_RECEIVED)
async def cmd_requests(message: Message, session: AsyncSession):
    await _show_pending(message, session, PendingDirection.RECEIVED)


@router.message(Command("sent"))
@router.message(F.text == MENU_SENT)
async def cmd_sent(message: Message, session: AsyncSession):
    await _show_pending(message, session, PendingDirection.SENT)


# ===== граф =====


@router.message(Command("connections"))
@router.message(F.text == MENU_CONNECTIONS)
async def cmd_connections(message: Message, session: AsyncSession):
    peer_ids = await list_connections(session, user_id=message.from_user.id)
    page = peer_ids[: settings.connections_page_size]
    await message.answer(format_connections_list(page, total=len(peer_ids)))


@router.message(Command("mutual"))
async def cmd_mutual(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
):
    other_id = _parse_user_id(command.args)
    if other_id is None:
        await _reply_usage(message, "mutual")
        return

    try:
        mutual = await compute_mutual_connections(
            session,
            user_a=message.from_user.id,
            user_b=other_id,
        )
    except ConnectionServiceError as exc:
        await message.answer(format_connection_error(exc))
        return

    await message.answer(
        format_mutual_connections(
            other_id,
            mutual[: settings.connections_page_size],
            total=len(mutual),
        )
    )


@router.message(Command("status"))
async def cmd_status(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
):
    other_id = _parse_user_id(command.args)
    if other_id is None:
        await _reply_usage(message, "status")
        return

    user_id = message.from_user.id
    status, pending = await get_connection_status(
        session,
        user_id=user_id,
        other_id=other_id,
    )

    mutual_count = 0
    if status not in (ConnectionStatus.SELF, ConnectionStatus.BLOCKED):
        mutual_count = len(
            await compute_mutual_connections(session, user_a=user_id, user_b=other_id)
        )

    markup = None
    if status is ConnectionStatus.NOT_CONNECTED:
        markup = send_request_keyboard(other_id)
    elif status is ConnectionStatus.PENDING_SENT:
        markup = sent_request_keyboard(pending.id)
    elif status is ConnectionStatus.PENDING_RECEIVED:
        markup = received_request_keyboard(pending.id)

    note, tags = None, ()
    if status is ConnectionStatus.CONNECTED:
        edge = await get_connection(session, user_id=user_id, other_id=other_id)
        if edge is not None:
            note, tags = edge.note, edge.tags or ()

    await message.answer(
        format_connection_status(
            other_id,
            status,
            mutual_count=mutual_count,
            note=note,
            tags=tags,
        ),
        reply_markup=markup,
    )


@router.message(Command("disconnect"))
async def cmd_disconnect(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    notifier: NotificationSink,
):
    other_id = _parse_user_id(command.args)
    if other_id is None:
        await _reply_usage(message, "disconnect")
        return

    try:
        await remove_connection(
            session,
            user_a=message.from_user.id,
            user_b=other_id,
            acting_user_id=message.from_user.id,
            notifier=notifier,
        )
    except ConnectionServiceError as exc:
        await message.answer(format_connection_error(exc))
        return

    await message.answer("Контакт удалён. Если что, всегда можно отправить новую заявку.")


# ===== блокировки =====


@router.message(Command("block"))
async def cmd_block(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
):
    other_id = _parse_user_id(command.args)
    if other_id is None:
        await _reply_usage(message, "block")
        return

    try:
        await block_user(session, acting_user_id=message.from_user.id, other_id=other_id)
    except ConnectionServiceError as exc:
        await message.answer(format_connection_error(exc))
        return

    await message.answer(
        "Пользователь заблокирован 🚫\n"
        "Заявки между вами закрыты, контакт удалён. Снять: /unblock &lt;id&gt;"
    )


@router.message(Command("unblock"))
async def cmd_unblock(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
):
    other_id = _parse_user_id(command.args)
    if other_id is None:
        await _reply_usage(message, "unblock")
        return

    try:
        await unblock_user(session, acting_user_id=message.from_user.id, other_id=other_id)
    except ConnectionServiceError as exc:
        await message.answer(format_connection_error(exc))
        return

    await message.answer("Блокировка снята. Контакт сам не вернётся, нужна новая заявка.")


# ===== заметка и теги контакта =====


@router.message(Command("note"))
async def cmd_note(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
):
    parts = (command.args or "").split(maxsplit=1)
    other_id = _parse_user_id(parts[0] if parts else None)
    if other_id is None:
        await _reply_usage(message, "note", " [текст, пусто = стереть]")
        return

    try:
        await update_connection_note(
            session,
            user_a=message.from_user.id,
            user_b=other_id,
            acting_user_id=message.from_user.id,
            note=parts[1] if len(parts) > 1 else None,
        )
    except ConnectionServiceError as exc:
        await message.answer(format_connection_error(exc))
        return

    await message.answer("Заметка сохранена ✍️")


@router.message(Command("tags"))
async def cmd_tags(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
):
    parts = (command.args or "").split(maxsplit=1)
    other_id = _parse_user_id(parts[0] if parts else None)
    if other_id is None:
        await _reply_usage(message, "tags", " тег1, тег2, ...")
        return

    raw_tags = parts[1].split(",") if len(parts) > 1 else []

    try:
        edge = await update_connection_tags(
            session,
            user_a=message.from_user.id,
            user_b=other_id,
            acting_user_id=message.from_user.id,
            tags=raw_tags,
        )
    except ConnectionServiceError as exc:
        await message.answer(format_connection_error(exc))
        return

    if edge.tags:
        await message.answer("Теги: " + ", ".join(html_safe(tag) for tag in edge.tags))
    else:
        await message.answer("Теги очищены.")
