# views/connections.py
from typing import Sequence

from constants import (
    CONNECTION_ERROR_MESSAGES,
    CONNECTION_STATUS_LABELS,
    PENDING_DIRECTION_TITLES,
    REQUEST_SOURCE_LABELS,
    REQUEST_STATUS_LABELS,
)
from errors import ConnectionServiceError
from models import ConnectionRequest
from services.connections import ConnectionStatus
from services.notifications import ConnectionEvent, EventType
from views.safe import html_safe


def format_user_link(user_id: int) -> str:
    """Ссылка на пользователя по id, без username, контакты не светим."""
    return f'<a href="tg://user?id={user_id}">id {user_id}</a>'


def format_connection_error(exc: ConnectionServiceError) -> str:
    text = CONNECTION_ERROR_MESSAGES.get((exc.code, exc.reason))
    if text is None:
        text = CONNECTION_ERROR_MESSAGES.get(
            (exc.code, None),
            CONNECTION_ERROR_MESSAGES[("internal_error", None)],
        )
    return text


def _status_value(req: ConnectionRequest) -> str:
    return getattr(req.status, "value", req.status)


def format_request_card(
    req: ConnectionRequest,
    *,
    viewer_id: int,
) -> str:
    """
    Карточка заявки для списков /requests и /sent.
    Показываем вторую сторону относительно того, кто смотрит.
    """
    incoming = req.recipient_id == viewer_id
    other_id = req.requester_id if incoming else req.recipient_id

    source = getattr(req.source, "value", req.source)

    lines: list[str] = []
    lines.append(f"{'От' if incoming else 'Кому'}: {format_user_link(other_id)}")
    lines.append(f"Статус: {REQUEST_STATUS_LABELS.get(_status_value(req), '—')}")
    if req.message:
        lines.append(f"Сообщение: {html_safe(req.message, max_length=200)}")
    lines.append(f"Источник: {REQUEST_SOURCE_LABELS.get(source, '—')}")
    if req.created_at:
        lines.append(f"Отправлена: {req.created_at:%d.%m.%Y %H:%M}")
    return "\n".join(lines)


def format_pending_header(direction: str, total: int) -> str:
    title = PENDING_DIRECTION_TITLES.get(direction, "Заявки")
    if total == 0:
        return f"{title}: пусто."
    return f"{title}: {total}"


def format_connections_list(
    peer_ids: Sequence[int],
    *,
    total: int | None = None,
) -> str:
    if not peer_ids:
        return "У тебя пока нет контактов. Отправь заявку: /connect &lt;id&gt;"

    count = total if total is not None else len(peer_ids)
    lines = [f"Твои контакты ({count}):"]
    lines.extend(f"• {format_user_link(peer_id)}" for peer_id in peer_ids)
    return "\n".join(lines)


def format_mutual_connections(
    other_id: int,
    mutual_ids: Sequence[int],
    *,
    total: int,
) -> str:
    if not mutual_ids:
        return f"Общих контактов с {format_user_link(other_id)} нет."

    lines = [f"Общие контакты с {format_user_link(other_id)}: {total}"]
    lines.extend(f"• {format_user_link(peer_id)}" for peer_id in mutual_ids)
    if total > len(mutual_ids):
        lines.append(f"…и ещё {total - len(mutual_ids)}")
    return "\n".join(lines)


def format_connection_status(
    other_id: int,
    status: ConnectionStatus | str,
    *,
    mutual_count: int = 0,
    note: str | None = None,
    tags: Sequence[str] = (),
) -> str:
    status = getattr(status, "value", status)
    lines = [
        f"Пользователь {format_user_link(other_id)}",
        CONNECTION_STATUS_LABELS.get(status, "—"),
    ]
    if mutual_count:
        lines.append(f"Общих контактов: {mutual_count}")
    if note:
        lines.append(f"Заметка: {html_safe(note, max_length=200)}")
    if tags:
        lines.append("Теги: " + ", ".join(html_safe(tag) for tag in tags))
    return "\n".join(lines)


def format_connection_event(event: ConnectionEvent) -> str:
    """Текст уведомления для получателя события (event.target_id)."""
    actor = format_user_link(event.actor_id)

    if event.type is EventType.CONNECTION_REQUESTED:
        text = f"Тебе пришла заявка на коннект от {actor}."
        if event.message:
            text += f"\n\nСообщение от отправителя:\n{html_safe(event.message)}"
        return text

    if event.type is EventType.CONNECTION_ACCEPTED:
        text = f"Твою заявку приняли 🎉\n\nТеперь вы на связи с {actor}."
        if event.message:
            text += f"\n\nЗаметка:\n{html_safe(event.message)}"
        return text

    if event.type is EventType.CONNECTION_DECLINED:
        return (
            "Твою заявку отклонили. "
            "Не принимай это близко к сердцу, это просто люди."
        )

    if event.type is EventType.CONNECTION_CANCELLED:
        return f"{actor} отозвал(а) заявку на коннект."

    return f"{actor} удалил(а) тебя из контактов."
