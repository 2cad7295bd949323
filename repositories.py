from datetime import datetime

from sqlalchemy import case, delete, desc, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from errors import (
    ALREADY_BLOCKED,
    ALREADY_CONNECTED,
    BLOCKED,
    DUPLICATE_PENDING,
    EDGE_EXISTS,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateError,
)
from models import (
    ConnectionBlock,
    ConnectionEdge,
    ConnectionRequest,
    PendingDirection,
    RequestSource,
    RequestStatus,
)

# Репозиторий ничего не коммитит: только flush.
# Границы транзакции держит сервисный слой (services/connections.py).


def canonical_pair(a: int, b: int) -> tuple[int, int]:
    """Неупорядоченная пара -> (меньший id, больший id)."""
    return (a, b) if a <= b else (b, a)


# ===== ЗАЯВКИ =====


async def create_request_if_absent(
    session: AsyncSession,
    *,
    requester_id: int,
    recipient_id: int,
    message: str | None = None,
    source: RequestSource = RequestSource.OTHER,
) -> ConnectionRequest:
    """
    Создаём pending-заявку, если для пары нет ни pending-заявки, ни связи.

    Дубли ловит частичный уникальный индекс (user_low, user_high) WHERE pending.
    Связь и блокировку проверяем ПОСЛЕ вставки в той же транзакции: если
    параллельное принятие или блок успели закоммитить, пока мы ждали
    блокировку SQLite, мы это увидим.

    При ConflictError новая строка уже во flush-е: вызывающий ОБЯЗАН сделать
    rollback (unit_of_work в services/connections.py так и делает).
    """
    low, high = canonical_pair(requester_id, recipient_id)

    req = ConnectionRequest(
        requester_id=requester_id,
        recipient_id=recipient_id,
        user_low=low,
        user_high=high,
        message=message,
        source=source,
        status=RequestStatus.PENDING,
    )
    session.add(req)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise ConflictError(
            "Между пользователями уже есть висящая заявка",
            reason=DUPLICATE_PENDING,
        ) from exc

    if await block_exists(session, low, high):
        raise AuthorizationError(
            "Между пользователями стоит блокировка",
            reason=BLOCKED,
        )

    if await edge_exists(session, low, high):
        raise ConflictError(
            "Пользователи уже связаны",
            reason=ALREADY_CONNECTED,
        )

    return req


async def get_request(
    session: AsyncSession,
    request_id: int,
) -> ConnectionRequest | None:
    # populate_existing - не верим identity map, статус мог поменять другой воркер
    return await session.get(
        ConnectionRequest,
        request_id,
        populate_existing=True,
    )


async def update_request_status(
    session: AsyncSession,
    *,
    request_id: int,
    expected_status: RequestStatus,
    new_status: RequestStatus,
    responded_at: datetime,
    note: str | None = None,
) -> ConnectionRequest:
    """
    Условный апдейт: UPDATE ... WHERE id = ? AND status = expected.
    Если ни одна строка не обновилась - либо заявки нет, либо статус уже другой.
    """
    values: dict = {"status": new_status, "responded_at": responded_at}
    if note is not None:
        values["note"] = note

    stmt = (
        update(ConnectionRequest)
        .where(
            ConnectionRequest.id == request_id,
            ConnectionRequest.status == expected_status,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)

    req = await get_request(session, request_id)
    if result.rowcount == 0:
        if req is None:
            raise NotFoundError(f"Заявка {request_id} не найдена")
        raise StateError(
            f"Заявка {request_id} в статусе {req.status.value}, "
            f"ожидался {expected_status.value}"
        )

    return req


async def get_pending_request_between(
    session: AsyncSession,
    a: int,
    b: int,
) -> ConnectionRequest | None:
    low, high = canonical_pair(a, b)
    stmt = select(ConnectionRequest).where(
        ConnectionRequest.user_low == low,
        ConnectionRequest.user_high == high,
        ConnectionRequest.status == RequestStatus.PENDING,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


def _pending_filter(user_id: int, direction: PendingDirection):
    party = (
        ConnectionRequest.requester_id
        if direction is PendingDirection.SENT
        else ConnectionRequest.recipient_id
    )
    return (party == user_id, ConnectionRequest.status == RequestStatus.PENDING)


async def list_pending_requests(
    session: AsyncSession,
    user_id: int,
    direction: PendingDirection,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[ConnectionRequest]:
    stmt = (
        select(ConnectionRequest)
        .where(*_pending_filter(user_id, direction))
        .order_by(desc(ConnectionRequest.created_at), desc(ConnectionRequest.id))
        .offset(offset)
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_pending_requests(
    session: AsyncSession,
    user_id: int,
    direction: PendingDirection,
) -> int:
    stmt = select(func.count(ConnectionRequest.id)).where(
        *_pending_filter(user_id, direction)
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def count_requests_sent_since(
    session: AsyncSession,
    requester_id: int,
    since: datetime,
) -> int:
    """Сколько заявок пользователь отправил начиная с since (любого статуса)."""
    stmt = select(func.count(ConnectionRequest.id)).where(
        ConnectionRequest.requester_id == requester_id,
        ConnectionRequest.created_at >= since,
    )
    result = await session.execute(stmt)
    return result.scalar_one()


# ===== СВЯЗИ =====


async def create_edge(
    session: AsyncSession,
    a: int,
    b: int,
    *,
    request_id: int | None = None,
    note: str | None = None,
) -> ConnectionEdge:
    low, high = canonical_pair(a, b)
    stmt = insert(ConnectionEdge).values(
        user_low=low,
        user_high=high,
        request_id=request_id,
        note=note,
        tags=[],
        created_at=datetime.utcnow(),
    )
    try:
        await session.execute(stmt)
    except IntegrityError as exc:
        raise ConflictError(
            f"Связь {low}<->{high} уже существует",
            reason=EDGE_EXISTS,
        ) from exc

    return await get_edge(session, low, high)


async def get_edge(
    session: AsyncSession,
    a: int,
    b: int,
) -> ConnectionEdge | None:
    low, high = canonical_pair(a, b)
    return await session.get(ConnectionEdge, (low, high), populate_existing=True)


async def edge_exists(
    session: AsyncSession,
    a: int,
    b: int,
) -> bool:
    low, high = canonical_pair(a, b)
    stmt = select(ConnectionEdge.user_low).where(
        ConnectionEdge.user_low == low,
        ConnectionEdge.user_high == high,
    )
    result = await session.execute(stmt)
    return result.first() is not None


async def remove_edge(
    session: AsyncSession,
    a: int,
    b: int,
) -> None:
    low, high = canonical_pair(a, b)
    stmt = (
        delete(ConnectionEdge)
        .where(
            ConnectionEdge.user_low == low,
            ConnectionEdge.user_high == high,
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount == 0:
        raise NotFoundError(f"Связь {low}<->{high} не найдена")


async def list_edges(
    session: AsyncSession,
    user_id: int,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[int]:
    """
    Id собеседников пользователя - от новых связей к старым.
    """
    peer = case(
        (ConnectionEdge.user_low == user_id, ConnectionEdge.user_high),
        else_=ConnectionEdge.user_low,
    )
    stmt = (
        select(peer)
        .where(
            or_(
                ConnectionEdge.user_low == user_id,
                ConnectionEdge.user_high == user_id,
            )
        )
        .order_by(desc(ConnectionEdge.created_at), peer)
        .offset(offset)
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_edge(
    session: AsyncSession,
    a: int,
    b: int,
    **values,
) -> ConnectionEdge:
    """Правим заметку / теги связи. Нет связи -> NotFoundError."""
    low, high = canonical_pair(a, b)
    stmt = (
        update(ConnectionEdge)
        .where(
            ConnectionEdge.user_low == low,
            ConnectionEdge.user_high == high,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount == 0:
        raise NotFoundError(f"Связь {low}<->{high} не найдена")

    return await get_edge(session, low, high)


# ===== БЛОКИРОВКИ =====


async def create_block(
    session: AsyncSession,
    *,
    blocked_by: int,
    other_id: int,
) -> ConnectionBlock:
    low, high = canonical_pair(blocked_by, other_id)
    stmt = insert(ConnectionBlock).values(
        user_low=low,
        user_high=high,
        blocked_by=blocked_by,
        created_at=datetime.utcnow(),
    )
    try:
        await session.execute(stmt)
    except IntegrityError as exc:
        raise ConflictError(
            f"Пара {low}<->{high} уже заблокирована",
            reason=ALREADY_BLOCKED,
        ) from exc

    return await get_block(session, low, high)


async def get_block(
    session: AsyncSession,
    a: int,
    b: int,
) -> ConnectionBlock | None:
    low, high = canonical_pair(a, b)
    return await session.get(ConnectionBlock, (low, high), populate_existing=True)


async def block_exists(
    session: AsyncSession,
    a: int,
    b: int,
) -> bool:
    low, high = canonical_pair(a, b)
    stmt = select(ConnectionBlock.user_low).where(
        ConnectionBlock.user_low == low,
        ConnectionBlock.user_high == high,
    )
    result = await session.execute(stmt)
    return result.first() is not None


async def remove_block(
    session: AsyncSession,
    a: int,
    b: int,
) -> None:
    low, high = canonical_pair(a, b)
    stmt = (
        delete(ConnectionBlock)
        .where(
            ConnectionBlock.user_low == low,
            ConnectionBlock.user_high == high,
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount == 0:
        raise NotFoundError(f"Блокировка {low}<->{high} не найдена")


async def cancel_pending_between(
    session: AsyncSession,
    a: int,
    b: int,
    *,
    responded_at: datetime,
) -> int:
    """Висящую заявку пары (если есть) переводим в cancelled. Возвращаем число строк."""
    low, high = canonical_pair(a, b)
    stmt = (
        update(ConnectionRequest)
        .where(
            ConnectionRequest.user_low == low,
            ConnectionRequest.user_high == high,
            ConnectionRequest.status == RequestStatus.PENDING,
        )
        .values(status=RequestStatus.CANCELLED, responded_at=responded_at)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount
