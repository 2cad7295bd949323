# services/optimistic.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class OptimisticAction(Generic[T]):
    """
    Пара «команда / откат» для оптимистичного UI.

    apply    - ставим локальный оверлей сразу (например, кнопку «Заявка отправлена»)
    commit   - настоящая операция через сервисный слой
    rollback - убираем оверлей, если commit упал
    """

    apply: Callable[[], Awaitable[None]]
    commit: Callable[[], Awaitable[T]]
    rollback: Callable[[], Awaitable[None]]
    name: str = "action"


async def run_optimistic(action: OptimisticAction[T]) -> T:
    await action.apply()

    try:
        result = await action.commit()
    except Exception as exc:
        logger.info(
            "optimistic_rollback name=%s error=%s",
            action.name,
            type(exc).__name__,
        )
        try:
            await action.rollback()
        except Exception:
            logger.exception("optimistic_rollback_failed name=%s", action.name)
        raise

    return result
