"""
Unit Tests for the connection store (repositories.py)
"""

import pytest

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
from models import PendingDirection, RequestStatus
from repositories import (
    block_exists,
    cancel_pending_between,
    canonical_pair,
    count_pending_requests,
    create_block,
    create_edge,
    create_request_if_absent,
    edge_exists,
    get_block,
    get_edge,
    get_pending_request_between,
    get_request,
    list_edges,
    list_pending_requests,
    remove_block,
    remove_edge,
    update_edge,
    update_request_status,
)


def test_canonical_pair_orders_ids():
    assert canonical_pair(7, 3) == (3, 7)
    assert canonical_pair(3, 7) == (3, 7)


class TestRequests:

    @pytest.mark.asyncio
    async def test_create_request_stores_canonical_pair(self, session):
        req = await create_request_if_absent(
            session, requester_id=20, recipient_id=10, message="hi"
        )
        await session.commit()

        assert req.id is not None
        assert (req.user_low, req.user_high) == (10, 20)
        assert req.status is RequestStatus.PENDING
        assert req.created_at is not None
        assert req.responded_at is None

    @pytest.mark.asyncio
    async def test_second_pending_for_reversed_pair_conflicts(self, session):
        await create_request_if_absent(session, requester_id=1, recipient_id=2)
        await session.commit()

        with pytest.raises(ConflictError) as exc_info:
            await create_request_if_absent(session, requester_id=2, recipient_id=1)
        await session.rollback()

        assert exc_info.value.reason == DUPLICATE_PENDING

    @pytest.mark.asyncio
    async def test_create_request_fails_when_edge_exists(self, session):
        await create_edge(session, 1, 2)
        await session.commit()

        with pytest.raises(ConflictError) as exc_info:
            await create_request_if_absent(session, requester_id=1, recipient_id=2)
        await session.rollback()

        assert exc_info.value.reason == ALREADY_CONNECTED
        assert await get_pending_request_between(session, 1, 2) is None

    @pytest.mark.asyncio
    async def test_terminal_request_does_not_block_new_pending(self, session):
        first = await create_request_if_absent(session, requester_id=1, recipient_id=2)
        await session.commit()
        await update_request_status(
            session,
            request_id=first.id,
            expected_status=RequestStatus.PENDING,
            new_status=RequestStatus.DECLINED,
            responded_at=first.created_at,
        )
        await session.commit()

        second = await create_request_if_absent(session, requester_id=1, recipient_id=2)
        await session.commit()

        assert second.id != first.id
        assert (await get_pending_request_between(session, 2, 1)).id == second.id

    @pytest.mark.asyncio
    async def test_conditional_update_rejects_wrong_expected_status(self, session):
        req = await create_request_if_absent(session, requester_id=1, recipient_id=2)
        await session.commit()
        request_id = req.id

        updated = await update_request_status(
            session,
            request_id=request_id,
            expected_status=RequestStatus.PENDING,
            new_status=RequestStatus.ACCEPTED,
            responded_at=req.created_at,
            note="nice to meet you",
        )
        await session.commit()
        assert updated.status is RequestStatus.ACCEPTED
        assert updated.responded_at is not None
        assert updated.note == "nice to meet you"

        with pytest.raises(StateError):
            await update_request_status(
                session,
                request_id=request_id,
                expected_status=RequestStatus.PENDING,
                new_status=RequestStatus.DECLINED,
                responded_at=updated.responded_at,
            )
        await session.rollback()

        assert (await get_request(session, request_id)).status is RequestStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_conditional_update_on_missing_request(self, session):
        with pytest.raises(NotFoundError):
            await update_request_status(
                session,
                request_id=999,
                expected_status=RequestStatus.PENDING,
                new_status=RequestStatus.CANCELLED,
                responded_at=None,
            )

    @pytest.mark.asyncio
    async def test_pending_lists_by_direction(self, session):
        await create_request_if_absent(session, requester_id=1, recipient_id=2)
        await create_request_if_absent(session, requester_id=1, recipient_id=3)
        await create_request_if_absent(session, requester_id=4, recipient_id=1)
        await session.commit()

        sent = await list_pending_requests(session, 1, PendingDirection.SENT)
        received = await list_pending_requests(session, 1, PendingDirection.RECEIVED)

        assert {r.recipient_id for r in sent} == {2, 3}
        assert [r.requester_id for r in received] == [4]
        assert await count_pending_requests(session, 1, PendingDirection.SENT) == 2
        assert await count_pending_requests(session, 1, PendingDirection.RECEIVED) == 1
        assert len(await list_pending_requests(session, 1, PendingDirection.SENT, limit=1)) == 1


class TestEdges:

    @pytest.mark.asyncio
    async def test_create_edge_is_unique_per_unordered_pair(self, session):
        edge = await create_edge(session, 5, 3, request_id=42)
        await session.commit()

        assert (edge.user_low, edge.user_high) == (3, 5)
        assert edge.request_id == 42

        with pytest.raises(ConflictError) as exc_info:
            await create_edge(session, 3, 5)
        await session.rollback()

        assert exc_info.value.reason == EDGE_EXISTS

    @pytest.mark.asyncio
    async def test_remove_edge(self, session):
        await create_edge(session, 1, 2)
        await session.commit()

        await remove_edge(session, 2, 1)
        await session.commit()

        assert not await edge_exists(session, 1, 2)
        assert await get_edge(session, 1, 2) is None

        with pytest.raises(NotFoundError):
            await remove_edge(session, 1, 2)

    @pytest.mark.asyncio
    async def test_list_edges_returns_peers(self, session):
        await create_edge(session, 1, 2)
        await create_edge(session, 3, 1)
        await create_edge(session, 2, 3)
        await session.commit()

        assert sorted(await list_edges(session, 1)) == [2, 3]
        assert sorted(await list_edges(session, 3)) == [1, 2]
        assert await list_edges(session, 99) == []
        assert len(await list_edges(session, 1, limit=1)) == 1

    @pytest.mark.asyncio
    async def test_update_edge_note_and_tags(self, session):
        await create_edge(session, 1, 2, note="из чата")
        await session.commit()

        edge = await update_edge(session, 2, 1, tags=["python", "ml"])
        await session.commit()

        assert edge.note == "из чата"
        assert edge.tags == ["python", "ml"]

        with pytest.raises(NotFoundError):
            await update_edge(session, 1, 3, note="нет такой связи")


class TestBlocks:

    @pytest.mark.asyncio
    async def test_block_is_one_row_per_pair(self, session):
        block = await create_block(session, blocked_by=7, other_id=3)
        await session.commit()

        assert (block.user_low, block.user_high, block.blocked_by) == (3, 7, 7)
        assert block.blocked_user() == 3
        assert await block_exists(session, 3, 7)

        with pytest.raises(ConflictError) as exc_info:
            await create_block(session, blocked_by=3, other_id=7)
        await session.rollback()

        assert exc_info.value.reason == ALREADY_BLOCKED
        assert (await get_block(session, 3, 7)).blocked_by == 7

    @pytest.mark.asyncio
    async def test_remove_block(self, session):
        await create_block(session, blocked_by=1, other_id=2)
        await session.commit()

        await remove_block(session, 2, 1)
        await session.commit()

        assert not await block_exists(session, 1, 2)
        with pytest.raises(NotFoundError):
            await remove_block(session, 1, 2)

    @pytest.mark.asyncio
    async def test_create_request_fails_when_pair_blocked(self, session):
        await create_block(session, blocked_by=2, other_id=1)
        await session.commit()

        with pytest.raises(AuthorizationError) as exc_info:
            await create_request_if_absent(session, requester_id=1, recipient_id=2)
        await session.rollback()

        assert exc_info.value.reason == BLOCKED
        assert await get_pending_request_between(session, 1, 2) is None

    @pytest.mark.asyncio
    async def test_cancel_pending_between_touches_only_that_pair(self, session):
        first = await create_request_if_absent(session, requester_id=2, recipient_id=1)
        other = await create_request_if_absent(session, requester_id=1, recipient_id=3)
        await session.commit()
        first_id, other_id = first.id, other.id

        cancelled = await cancel_pending_between(
            session, 1, 2, responded_at=first.created_at
        )
        await session.commit()

        assert cancelled == 1
        assert (await get_request(session, first_id)).status is RequestStatus.CANCELLED
        assert (await get_request(session, other_id)).status is RequestStatus.PENDING
        assert await cancel_pending_between(session, 1, 2, responded_at=first.created_at) == 0
