import pytest

from errors import ValidationError
from repositories import create_edge
from services.mutual import compute_mutual_connections, count_mutual_connections


async def _connect(session, *pairs):
    for a, b in pairs:
        await create_edge(session, a, b)
    await session.commit()


@pytest.mark.asyncio
async def test_mutual_connections_scenario(session):
    # A-C, A-D, B-C, B-E
    await _connect(session, (1, 3), (1, 4), (2, 3), (2, 5))

    assert await compute_mutual_connections(session, user_a=1, user_b=2) == [3]
    assert await compute_mutual_connections(session, user_a=2, user_b=1) == [3]
    assert await count_mutual_connections(session, user_a=1, user_b=2) == 1


@pytest.mark.asyncio
async def test_mutual_is_sorted_and_limited(session):
    await _connect(session, *[(1, c) for c in (9, 7, 8)], *[(2, c) for c in (8, 9, 7, 6)])

    assert await compute_mutual_connections(session, user_a=1, user_b=2) == [7, 8, 9]
    assert await compute_mutual_connections(session, user_a=1, user_b=2, limit=2) == [7, 8]


@pytest.mark.asyncio
async def test_direct_connection_is_not_mutual(session):
    await _connect(session, (1, 2), (1, 3), (2, 3))

    assert await compute_mutual_connections(session, user_a=1, user_b=2) == [3]


@pytest.mark.asyncio
async def test_no_connections(session):
    assert await compute_mutual_connections(session, user_a=1, user_b=2) == []


@pytest.mark.asyncio
async def test_mutual_with_self_is_rejected(session):
    with pytest.raises(ValidationError):
        await compute_mutual_connections(session, user_a=1, user_b=1)
