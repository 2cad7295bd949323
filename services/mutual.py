# services/mutual.py
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from errors import SELF_REQUEST, ValidationError
from repositories import list_edges
from services.connections import ensure_user_ids, store_errors

logger = logging.getLogger(__name__)


async def compute_mutual_connections(
    session: AsyncSession,
    *,
    user_a: int,
    user_b: int,
    limit: int | None = None,
) -> list[int]:
    """
    Общие связи двух пользователей: все C, у которых есть связи {A, C} и {B, C}.

    - берём оба списка соседей и пересекаем меньший с большим
    - результат отсортирован, поэтому mutual(A, B) == mutual(B, A)
    - это снимок на момент чтения, параллельные изменения графа не ждём
    """
    ensure_user_ids(user_a, user_b)
    if user_a == user_b:
        raise ValidationError(
            "Нельзя искать общие связи с самим собой",
            reason=SELF_REQUEST,
        )

    async with store_errors(session, "mutual"):
        neighbours_a = set(await list_edges(session, user_a))
        neighbours_b = set(await list_edges(session, user_b))

    if len(neighbours_a) <= len(neighbours_b):
        smaller, larger = neighbours_a, neighbours_b
    else:
        smaller, larger = neighbours_b, neighbours_a

    excluded = {user_a, user_b}
    mutual = sorted(c for c in smaller if c in larger and c not in excluded)

    logger.info(
        "mutual_connections_computed user_a=%s user_b=%s degree_a=%s degree_b=%s count=%s",
        user_a,
        user_b,
        len(neighbours_a),
        len(neighbours_b),
        len(mutual),
    )

    if limit is not None:
        return mutual[:limit]
    return mutual


async def count_mutual_connections(
    session: AsyncSession,
    *,
    user_a: int,
    user_b: int,
) -> int:
    mutual = await compute_mutual_connections(session, user_a=user_a, user_b=user_b)
    return len(mutual)
