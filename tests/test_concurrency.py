"""
Races between independent sessions.

У каждой корутины своя сессия и своё соединение к одному файлу SQLite,
так что уникальные индексы и блокировки работают по-настоящему.
"""

import asyncio

import pytest

from errors import ConflictError, DUPLICATE_PENDING, StateError
from models import ConnectionRequest, RequestStatus
from services.connections import (
    accept_connection_request,
    cancel_connection_request,
    count_pending_requests,
    get_connection_request,
    list_connections,
    send_connection_request,
)
from services.notifications import EventType

ALICE = 1
BOB = 2


async def _in_own_session(session_maker, func, **kwargs):
    async with session_maker() as session:
        return await func(session, **kwargs)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "pairs",
    [
        [(ALICE, BOB), (ALICE, BOB)],
        [(ALICE, BOB), (BOB, ALICE)],
    ],
    ids=["same_direction", "crossed"],
)
async def test_concurrent_sends_leave_one_pending(session_maker, sink, pairs):
    results = await asyncio.gather(
        *(
            _in_own_session(
                session_maker,
                send_connection_request,
                requester_id=requester,
                recipient_id=recipient,
                notifier=sink,
            )
            for requester, recipient in pairs
        ),
        return_exceptions=True,
    )

    created = [r for r in results if isinstance(r, ConnectionRequest)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]

    assert len(created) == 1
    assert len(conflicts) == 1
    assert conflicts[0].reason == DUPLICATE_PENDING
    assert sink.types() == [EventType.CONNECTION_REQUESTED]

    async with session_maker() as session:
        total = await count_pending_requests(
            session, user_id=ALICE, direction="sent"
        ) + await count_pending_requests(session, user_id=BOB, direction="sent")
    assert total == 1


@pytest.mark.asyncio
async def test_concurrent_accepts_create_one_edge(session_maker, sink):
    async with session_maker() as session:
        req = await send_connection_request(
            session, requester_id=ALICE, recipient_id=BOB, notifier=sink
        )
    request_id = req.id

    results = await asyncio.gather(
        *(
            _in_own_session(
                session_maker,
                accept_connection_request,
                request_id=request_id,
                acting_user_id=BOB,
                notifier=sink,
            )
            for _ in range(2)
        ),
        return_exceptions=True,
    )

    accepted = [r for r in results if isinstance(r, ConnectionRequest)]
    losers = [r for r in results if isinstance(r, (ConflictError, StateError))]

    assert len(accepted) == 1
    assert len(losers) == 1
    assert sink.types().count(EventType.CONNECTION_ACCEPTED) == 1

    async with session_maker() as session:
        stored = await get_connection_request(session, request_id=request_id)
        assert stored.status is RequestStatus.ACCEPTED
        assert await list_connections(session, user_id=ALICE) == [BOB]


@pytest.mark.asyncio
async def test_accept_racing_cancel_has_single_outcome(session_maker, sink):
    async with session_maker() as session:
        req = await send_connection_request(
            session, requester_id=ALICE, recipient_id=BOB, notifier=sink
        )
    request_id = req.id

    accept_result, cancel_result = await asyncio.gather(
        _in_own_session(
            session_maker,
            accept_connection_request,
            request_id=request_id,
            acting_user_id=BOB,
            notifier=sink,
        ),
        _in_own_session(
            session_maker,
            cancel_connection_request,
            request_id=request_id,
            acting_user_id=ALICE,
            notifier=sink,
        ),
        return_exceptions=True,
    )

    outcomes = [r for r in (accept_result, cancel_result) if isinstance(r, ConnectionRequest)]
    assert len(outcomes) == 1
    assert sum(isinstance(r, StateError) for r in (accept_result, cancel_result)) == 1

    async with session_maker() as session:
        stored = await get_connection_request(session, request_id=request_id)
        connections = await list_connections(session, user_id=ALICE)

    if stored.status is RequestStatus.ACCEPTED:
        assert connections == [BOB]
    else:
        assert stored.status is RequestStatus.CANCELLED
        assert connections == []
