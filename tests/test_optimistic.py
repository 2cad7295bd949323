import pytest

from errors import ConflictError
from services.optimistic import OptimisticAction, run_optimistic


class Overlay:
    """Локальное состояние кнопки, которое двигает оптимистичная команда."""

    def __init__(self):
        self.state = "idle"
        self.history = []

    def set(self, state):
        self.state = state
        self.history.append(state)


def _action(overlay, commit, rollback=None):
    async def apply():
        overlay.set("in_flight")

    async def default_rollback():
        overlay.set("idle")

    return OptimisticAction(
        apply=apply,
        commit=commit,
        rollback=rollback or default_rollback,
        name="test",
    )


@pytest.mark.asyncio
async def test_commit_success_keeps_overlay():
    overlay = Overlay()

    async def commit():
        return 42

    assert await run_optimistic(_action(overlay, commit)) == 42
    assert overlay.history == ["in_flight"]


@pytest.mark.asyncio
async def test_commit_failure_rolls_back_and_reraises():
    overlay = Overlay()

    async def commit():
        raise ConflictError(reason="duplicate_pending")

    with pytest.raises(ConflictError):
        await run_optimistic(_action(overlay, commit))

    assert overlay.history == ["in_flight", "idle"]
    assert overlay.state == "idle"


@pytest.mark.asyncio
async def test_broken_rollback_does_not_hide_original_error():
    overlay = Overlay()

    async def commit():
        raise ConflictError(reason="already_connected")

    async def rollback():
        raise RuntimeError("message to edit not found")

    with pytest.raises(ConflictError):
        await run_optimistic(_action(overlay, commit, rollback))
