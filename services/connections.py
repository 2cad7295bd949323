# services/connections.py
import enum
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from errors import (
    ALREADY_CONNECTED,
    BLOCKED,
    DAILY_LIMIT,
    INVALID_ACTION,
    INVALID_DIRECTION,
    INVALID_REQUEST_ID,
    INVALID_SOURCE,
    INVALID_TAGS,
    INVALID_USER_ID,
    MESSAGE_TOO_LONG,
    NOTE_TOO_LONG,
    SELF_REQUEST,
    AuthorizationError,
    ConflictError,
    ConnectionServiceError,
    InternalError,
    NotFoundError,
    RateLimitError,
    StateError,
    ValidationError,
)
from models import (
    ConnectionBlock,
    ConnectionEdge,
    ConnectionRequest,
    PendingDirection,
    RequestSource,
    RequestStatus,
    is_storable_id,
)
from repositories import (
    block_exists,
    cancel_pending_between,
    count_pending_requests as repo_count_pending_requests,
    count_requests_sent_since,
    create_block,
    create_edge,
    create_request_if_absent,
    edge_exists,
    get_block,
    get_edge,
    get_pending_request_between,
    get_request,
    list_edges,
    list_pending_requests as repo_list_pending_requests,
    remove_block,
    remove_edge,
    update_edge,
    update_request_status,
)
from services.notifications import (
    ConnectionEvent,
    EventType,
    LoggingNotificationSink,
    NotificationSink,
    dispatch_event,
)

logger = logging.getLogger(__name__)

_default_notifier = LoggingNotificationSink()


class ResponseAction(str, enum.Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class ConnectionStatus(str, enum.Enum):
    SELF = "self"
    CONNECTED = "connected"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    BLOCKED = "blocked"
    NOT_CONNECTED = "not_connected"


# ===== транзакции =====


@asynccontextmanager
async def store_errors(session: AsyncSession, operation: str):
    """Любая ошибка SQLAlchemy -> откат + InternalError."""
    try:
        yield
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("connection_store_failed operation=%s", operation)
        raise InternalError("Ошибка хранилища, попробуй позже") from exc


@asynccontextmanager
async def unit_of_work(session: AsyncSession, operation: str):
    """
    Одна мутирующая операция = одна транзакция.
    Успех -> commit. Доменная ошибка -> rollback и пробрасываем как есть.
    """
    async with store_errors(session, operation):
        try:
            yield
            await session.commit()
        except ConnectionServiceError as exc:
            await session.rollback()
            logger.info(
                "connection_%s_failed code=%s reason=%s",
                operation,
                exc.code,
                exc.reason,
            )
            raise


# ===== хелперы валидации =====


def _coerce(enum_cls, value, *, reason: str):
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(
            f"Недопустимое значение: {value!r}",
            reason=reason,
        ) from exc


def _clean_text(value: str | None, *, max_length: int, reason: str) -> str | None:
    """Пустое -> None, длинное -> ValidationError."""
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    if len(value) > max_length:
        raise ValidationError(
            f"Слишком длинный текст: {len(value)} > {max_length}",
            reason=reason,
        )
    return value


def ensure_user_ids(*user_ids: int) -> None:
    # id пишем в BigInteger: всё, что не влезает, отсекаем до похода в базу
    for user_id in user_ids:
        if not is_storable_id(user_id):
            raise ValidationError(
                f"Некорректный id пользователя: {user_id!r}",
                reason=INVALID_USER_ID,
            )


def _ensure_request_id(request_id: int) -> None:
    if not is_storable_id(request_id):
        raise ValidationError(
            f"Некорректный id заявки: {request_id!r}",
            reason=INVALID_REQUEST_ID,
        )


def _ensure_member(user_a: int, user_b: int, acting_user_id: int) -> None:
    """Операции над связью: пара из двух разных людей, действует участник."""
    ensure_user_ids(user_a, user_b, acting_user_id)

    if user_a == user_b:
        raise ValidationError("Связи с самим собой не бывает", reason=SELF_REQUEST)

    if acting_user_id not in (user_a, user_b):
        raise AuthorizationError("Менять связь может только её участник")


def _clean_tags(tags) -> list[str]:
    """
    Теги контакта:
    - только список строк
    - пробелы по краям режем, пустые и повторы выкидываем
    - больше connection_tags_max - отбрасываем хвост
    """
    if not isinstance(tags, (list, tuple)):
        raise ValidationError("Теги передаются списком", reason=INVALID_TAGS)

    cleaned: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            raise ValidationError(f"Тег должен быть строкой: {tag!r}", reason=INVALID_TAGS)

        tag = tag.strip()
        if not tag or tag in cleaned:
            continue

        if len(tag) > settings.connection_tag_max_length:
            raise ValidationError(
                f"Слишком длинный тег: {len(tag)} > {settings.connection_tag_max_length}",
                reason=INVALID_TAGS,
            )
        cleaned.append(tag)

    return cleaned[: settings.connection_tags_max]


async def _check_daily_limit(session: AsyncSession, requester_id: int) -> None:
    limit = settings.max_connection_requests_per_day
    if limit <= 0:
        return

    start_of_day = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    sent_today = await count_requests_sent_since(session, requester_id, start_of_day)

    if sent_today >= limit:
        raise RateLimitError(
            f"Достигнут дневной лимит заявок ({limit})",
            reason=DAILY_LIMIT,
        )


async def _load_request(session: AsyncSession, request_id: int) -> ConnectionRequest:
    req = await get_request(session, request_id)
    if req is None:
        raise NotFoundError(f"Заявка {request_id} не найдена")
    return req


def _ensure_pending(req: ConnectionRequest) -> None:
    if req.status is not RequestStatus.PENDING:
        raise StateError(f"Заявка {req.id} уже обработана ({req.status.value})")


# ===== жизненный цикл заявки =====


async def send_connection_request(
    session: AsyncSession,
    *,
    requester_id: int,
    recipient_id: int,
    message: str | None = None,
    source: RequestSource | str = RequestSource.OTHER,
    notifier: NotificationSink | None = None,
) -> ConnectionRequest:
    """
    Новая заявка requester -> recipient.

    Отказы:
      - ValidationError - заявка самому себе / слишком длинное сообщение
      - ConflictError(already_connected) - связь уже есть
      - ConflictError(duplicate_pending) - висит заявка в любую сторону
      - AuthorizationError(blocked) - в паре стоит блокировка
      - RateLimitError - дневной лимит

    Старые заявки в конечном статусе (declined / cancelled / accepted)
    новую заявку не блокируют.
    """
    ensure_user_ids(requester_id, recipient_id)
    if requester_id == recipient_id:
        raise ValidationError("Нельзя отправить заявку самому себе", reason=SELF_REQUEST)

    message = _clean_text(
        message,
        max_length=settings.connection_message_max_length,
        reason=MESSAGE_TOO_LONG,
    )
    source = _coerce(RequestSource, source, reason=INVALID_SOURCE)

    async with unit_of_work(session, "send"):
        if await block_exists(session, requester_id, recipient_id):
            raise AuthorizationError("Заявку отправить нельзя", reason=BLOCKED)

        if await edge_exists(session, requester_id, recipient_id):
            raise ConflictError("Вы уже на связи", reason=ALREADY_CONNECTED)

        await _check_daily_limit(session, requester_id)

        req = await create_request_if_absent(
            session,
            requester_id=requester_id,
            recipient_id=recipient_id,
            message=message,
            source=source,
        )

    logger.info(
        "connection_request_sent request_id=%s from_id=%s to_id=%s source=%s has_message=%s",
        req.id,
        req.requester_id,
        req.recipient_id,
        req.source.value,
        bool(req.message),
    )

    await dispatch_event(
        notifier or _default_notifier,
        ConnectionEvent(
            type=EventType.CONNECTION_REQUESTED,
            actor_id=req.requester_id,
            target_id=req.recipient_id,
            request_id=req.id,
            timestamp=req.created_at,
            message=req.message,
        ),
    )
    return req


async def respond_to_connection_request(
    session: AsyncSession,
    *,
    request_id: int,
    acting_user_id: int,
    action: ResponseAction | str,
    note: str | None = None,
    notifier: NotificationSink | None = None,
) -> ConnectionRequest:
    """
    Ответ получателя на заявку.

    accept: сначала создаём связь, потом pending -> accepted, всё в одной
    транзакции. Если связь уже есть (гонка с другим принятием) - ConflictError,
    заявка остаётся pending.
    """
    _ensure_request_id(request_id)
    action = _coerce(ResponseAction, action, reason=INVALID_ACTION)
    note = _clean_text(
        note,
        max_length=settings.connection_note_max_length,
        reason=NOTE_TOO_LONG,
    )

    async with unit_of_work(session, f"respond_{action.value}"):
        req = await _load_request(session, request_id)

        if req.recipient_id != acting_user_id:
            raise AuthorizationError("Ответить на заявку может только получатель")
        _ensure_pending(req)

        now = datetime.utcnow()
        if action is ResponseAction.ACCEPT:
            await create_edge(
                session,
                req.requester_id,
                req.recipient_id,
                request_id=req.id,
                note=note,
            )
            if await block_exists(session, req.requester_id, req.recipient_id):
                raise AuthorizationError("Между вами стоит блокировка", reason=BLOCKED)
            req = await update_request_status(
                session,
                request_id=req.id,
                expected_status=RequestStatus.PENDING,
                new_status=RequestStatus.ACCEPTED,
                responded_at=now,
                note=note,
            )
            event_type = EventType.CONNECTION_ACCEPTED
        else:
            req = await update_request_status(
                session,
                request_id=req.id,
                expected_status=RequestStatus.PENDING,
                new_status=RequestStatus.DECLINED,
                responded_at=now,
            )
            event_type = EventType.CONNECTION_DECLINED

    logger.info(
        "connection_request_responded request_id=%s from_id=%s to_id=%s status=%s",
        req.id,
        req.requester_id,
        req.recipient_id,
        req.status.value,
    )

    await dispatch_event(
        notifier or _default_notifier,
        ConnectionEvent(
            type=event_type,
            actor_id=acting_user_id,
            target_id=req.requester_id,
            request_id=req.id,
            timestamp=req.responded_at or now,
            message=req.note,
        ),
    )
    return req


async def accept_connection_request(
    session: AsyncSession,
    *,
    request_id: int,
    acting_user_id: int,
    note: str | None = None,
    notifier: NotificationSink | None = None,
) -> ConnectionRequest:
    return await respond_to_connection_request(
        session,
        request_id=request_id,
        acting_user_id=acting_user_id,
        action=ResponseAction.ACCEPT,
        note=note,
        notifier=notifier,
    )


async def decline_connection_request(
    session: AsyncSession,
    *,
    request_id: int,
    acting_user_id: int,
    notifier: NotificationSink | None = None,
) -> ConnectionRequest:
    return await respond_to_connection_request(
        session,
        request_id=request_id,
        acting_user_id=acting_user_id,
        action=ResponseAction.DECLINE,
        notifier=notifier,
    )


async def cancel_connection_request(
    session: AsyncSession,
    *,
    request_id: int,
    acting_user_id: int,
    notifier: NotificationSink | None = None,
) -> ConnectionRequest:
    """Отправитель отзывает свою висящую заявку."""
    _ensure_request_id(request_id)
    async with unit_of_work(session, "cancel"):
        req = await _load_request(session, request_id)

        if req.requester_id != acting_user_id:
            raise AuthorizationError("Отозвать заявку может только отправитель")
        _ensure_pending(req)

        req = await update_request_status(
            session,
            request_id=req.id,
            expected_status=RequestStatus.PENDING,
            new_status=RequestStatus.CANCELLED,
            responded_at=datetime.utcnow(),
        )

    logger.info(
        "connection_request_cancelled request_id=%s from_id=%s to_id=%s",
        req.id,
        req.requester_id,
        req.recipient_id,
    )

    await dispatch_event(
        notifier or _default_notifier,
        ConnectionEvent(
            type=EventType.CONNECTION_CANCELLED,
            actor_id=acting_user_id,
            target_id=req.recipient_id,
            request_id=req.id,
            timestamp=req.responded_at,
        ),
    )
    return req


async def remove_connection(
    session: AsyncSession,
    *,
    user_a: int,
    user_b: int,
    acting_user_id: int,
    notifier: NotificationSink | None = None,
) -> None:
    """Разрыв связи любой из сторон. История заявок не меняется."""
    _ensure_member(user_a, user_b, acting_user_id)

    async with unit_of_work(session, "remove"):
        await remove_edge(session, user_a, user_b)

    other_id = user_b if acting_user_id == user_a else user_a
    logger.info(
        "connection_removed actor_id=%s other_id=%s",
        acting_user_id,
        other_id,
    )

    await dispatch_event(
        notifier or _default_notifier,
        ConnectionEvent(
            type=EventType.CONNECTION_REMOVED,
            actor_id=acting_user_id,
            target_id=other_id,
            request_id=None,
        ),
    )


# ===== блокировки =====


async def block_user(
    session: AsyncSession,
    *,
    acting_user_id: int,
    other_id: int,
) -> ConnectionBlock:
    """
    Блокировка пары. В одной транзакции:
    - ставим блок (второй блок на ту же пару -> ConflictError)
    - рвём связь, если была
    - висящую заявку в любую сторону переводим в cancelled

    Событий не шлём: заблокированный об этом не узнаёт.
    """
    ensure_user_ids(acting_user_id, other_id)
    if acting_user_id == other_id:
        raise ValidationError("Нельзя заблокировать самого себя", reason=SELF_REQUEST)

    async with unit_of_work(session, "block"):
        block = await create_block(session, blocked_by=acting_user_id, other_id=other_id)

        had_edge = await edge_exists(session, acting_user_id, other_id)
        if had_edge:
            await remove_edge(session, acting_user_id, other_id)

        cancelled = await cancel_pending_between(
            session,
            acting_user_id,
            other_id,
            responded_at=block.created_at,
        )

    logger.info(
        "connection_blocked actor_id=%s other_id=%s removed_edge=%s cancelled_requests=%s",
        acting_user_id,
        other_id,
        had_edge,
        cancelled,
    )
    return block


async def unblock_user(
    session: AsyncSession,
    *,
    acting_user_id: int,
    other_id: int,
) -> None:
    """Снять блок может только тот, кто его поставил. Связь сама не возвращается."""
    ensure_user_ids(acting_user_id, other_id)

    async with unit_of_work(session, "unblock"):
        block = await get_block(session, acting_user_id, other_id)
        if block is None:
            raise NotFoundError("Блокировки нет")
        if block.blocked_by != acting_user_id:
            raise AuthorizationError("Снять блокировку может только тот, кто её поставил")

        await remove_block(session, acting_user_id, other_id)

    logger.info(
        "connection_unblocked actor_id=%s other_id=%s",
        acting_user_id,
        other_id,
    )


# ===== карточка контакта: заметка и теги =====


async def update_connection_note(
    session: AsyncSession,
    *,
    user_a: int,
    user_b: int,
    acting_user_id: int,
    note: str | None,
) -> ConnectionEdge:
    """Пустая заметка стирает текущую."""
    _ensure_member(user_a, user_b, acting_user_id)
    note = _clean_text(
        note,
        max_length=settings.connection_note_max_length,
        reason=NOTE_TOO_LONG,
    )

    async with unit_of_work(session, "update_note"):
        edge = await update_edge(session, user_a, user_b, note=note)

    logger.info(
        "connection_note_updated actor_id=%s user_a=%s user_b=%s has_note=%s",
        acting_user_id,
        user_a,
        user_b,
        bool(note),
    )
    return edge


async def update_connection_tags(
    session: AsyncSession,
    *,
    user_a: int,
    user_b: int,
    acting_user_id: int,
    tags,
) -> ConnectionEdge:
    _ensure_member(user_a, user_b, acting_user_id)
    tags = _clean_tags(tags)

    async with unit_of_work(session, "update_tags"):
        edge = await update_edge(session, user_a, user_b, tags=tags)

    logger.info(
        "connection_tags_updated actor_id=%s user_a=%s user_b=%s tags=%s",
        acting_user_id,
        user_a,
        user_b,
        len(tags),
    )
    return edge


# ===== чтение =====


async def get_connection(
    session: AsyncSession,
    *,
    user_id: int,
    other_id: int,
) -> ConnectionEdge | None:
    """Связь пары вместе с заметкой и тегами, или None."""
    ensure_user_ids(user_id, other_id)
    async with store_errors(session, "get_connection"):
        return await get_edge(session, user_id, other_id)


async def get_connection_request(
    session: AsyncSession,
    *,
    request_id: int,
) -> ConnectionRequest | None:
    _ensure_request_id(request_id)
    async with store_errors(session, "get_request"):
        req = await get_request(session, request_id)
    logger.info(
        "connection_request_fetched request_id=%s found=%s",
        request_id,
        bool(req),
    )
    return req


async def list_pending_requests(
    session: AsyncSession,
    *,
    user_id: int,
    direction: PendingDirection | str,
    limit: int | None = None,
    offset: int = 0,
) -> list[ConnectionRequest]:
    ensure_user_ids(user_id)
    direction = _coerce(PendingDirection, direction, reason=INVALID_DIRECTION)
    async with store_errors(session, "list_pending"):
        return await repo_list_pending_requests(
            session,
            user_id,
            direction,
            limit=limit,
            offset=offset,
        )


async def count_pending_requests(
    session: AsyncSession,
    *,
    user_id: int,
    direction: PendingDirection | str,
) -> int:
    """Счётчик всегда считаем из БД, отдельно его нигде не храним."""
    ensure_user_ids(user_id)
    direction = _coerce(PendingDirection, direction, reason=INVALID_DIRECTION)
    async with store_errors(session, "count_pending"):
        return await repo_count_pending_requests(session, user_id, direction)


async def list_connections(
    session: AsyncSession,
    *,
    user_id: int,
    limit: int | None = None,
    offset: int = 0,
) -> list[int]:
    ensure_user_ids(user_id)
    async with store_errors(session, "list_connections"):
        return await list_edges(session, user_id, limit=limit, offset=offset)


async def get_connection_status(
    session: AsyncSession,
    *,
    user_id: int,
    other_id: int,
) -> tuple[ConnectionStatus, ConnectionRequest | None]:
    """
    Возвращаем (status, pending_request).
    pending_request заполнен только для pending_sent / pending_received.
    Блокировка важнее связи и заявок: при ней всегда blocked.
    """
    ensure_user_ids(user_id, other_id)
    if user_id == other_id:
        return ConnectionStatus.SELF, None

    async with store_errors(session, "status"):
        if await block_exists(session, user_id, other_id):
            return ConnectionStatus.BLOCKED, None

        if await edge_exists(session, user_id, other_id):
            return ConnectionStatus.CONNECTED, None

        pending = await get_pending_request_between(session, user_id, other_id)

    if pending is None:
        return ConnectionStatus.NOT_CONNECTED, None

    if pending.requester_id == user_id:
        return ConnectionStatus.PENDING_SENT, pending
    return ConnectionStatus.PENDING_RECEIVED, pending
