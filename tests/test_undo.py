"""Tests for the bounded undo stack."""
from skillrpg.core.undo import UndoAction, UndoActionType, UndoStack

from tests.conftest import NOW


def _action(n: int) -> UndoAction:
    return UndoAction.create(UndoActionType.DELETE_TASK, f"action {n}", {"n": n})


class TestUndoStack:
    """Test LIFO behavior and capacity."""

    def test_empty_stack(self):
        stack = UndoStack()
        assert stack.pop() is None
        assert stack.peek() is None
        assert stack.size == 0

    def test_lifo_order(self):
        stack = UndoStack()
        stack.push(_action(1))
        stack.push(_action(2))
        assert stack.pop().data["n"] == 2
        assert stack.pop().data["n"] == 1
        assert stack.pop() is None

    def test_capacity_evicts_oldest(self):
        stack = UndoStack()
        for n in range(1, 12):
            stack.push(_action(n))

        assert stack.size == 10
        assert stack.pop().data["n"] == 11
        remaining = [stack.pop().data["n"] for _ in range(stack.size)]
        assert remaining == list(range(10, 1, -1))

    def test_custom_capacity(self):
        stack = UndoStack(max_size=2)
        for n in range(5):
            stack.push(_action(n))
        assert len(stack) == 2

    def test_capacity_never_exceeds_ten(self):
        stack = UndoStack(max_size=50)
        for n in range(20):
            stack.push(_action(n))
        assert stack.max_size == 10
        assert stack.size == 10
        assert stack.peek().data["n"] == 19

    def test_peek_does_not_remove(self):
        stack = UndoStack()
        stack.push(_action(1))
        assert stack.peek().data["n"] == 1
        assert stack.size == 1

    def test_clear(self):
        stack = UndoStack()
        stack.push(_action(1))
        stack.clear()
        assert stack.size == 0
        assert stack.pop() is None


class TestUndoAction:
    """Test action records."""

    def test_create_assigns_id_and_timestamp(self):
        action = UndoAction.create(UndoActionType.DELETE_FIGHTER, "gone", {}, timestamp=NOW)
        assert action.id.startswith("undo_")
        assert action.timestamp == NOW

    def test_ids_unique(self):
        assert _action(1).id != _action(1).id

    def test_summary_omits_data(self):
        action = UndoAction.create(UndoActionType.DELETE_SKILL, "gone", {"skill": object()}, timestamp=NOW)
        assert action.summary() == {
            "id": action.id,
            "type": "delete_skill",
            "description": "gone",
            "timestamp": NOW.isoformat(),
        }
