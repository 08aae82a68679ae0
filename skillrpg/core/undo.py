"""
Undo stack for destructive operations.

Records the last N deletions (fighters, tasks, skills, categories) with a
snapshot of the removed entity. Replaying an action is the job of the
caller; the stack does not inspect `data`.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid


DEFAULT_MAX_SIZE = 10


class UndoActionType(str, Enum):
    """Kinds of reversible deletions."""
    DELETE_FIGHTER = "delete_fighter"
    DELETE_TASK = "delete_task"
    DELETE_SKILL = "delete_skill"
    DELETE_CATEGORY = "delete_category"


@dataclass
class UndoAction:
    """A reversible record of a deletion."""
    type: UndoActionType
    description: str
    data: Dict[str, Any]
    id: str = field(default_factory=lambda: f"undo_{uuid.uuid4().hex[:12]}")
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(
        cls,
        action_type: UndoActionType,
        description: str,
        data: Dict[str, Any],
        timestamp: Optional[datetime] = None,
    ) -> "UndoAction":
        action = cls(type=action_type, description=description, data=data)
        if timestamp is not None:
            action.timestamp = timestamp
        return action

    def summary(self) -> Dict[str, Any]:
        """JSON-safe view without the entity snapshot."""
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
        }


class UndoStack:
    """
    Bounded LIFO stack of undo actions.

    Pushing beyond capacity evicts the oldest entry. Capacity is capped at
    DEFAULT_MAX_SIZE.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        self.max_size = max(1, min(max_size, DEFAULT_MAX_SIZE))
        self._stack: List[UndoAction] = []

    def push(self, action: UndoAction) -> None:
        self._stack.append(action)
        if len(self._stack) > self.max_size:
            self._stack.pop(0)

    def pop(self) -> Optional[UndoAction]:
        if not self._stack:
            return None
        return self._stack.pop()

    def peek(self) -> Optional[UndoAction]:
        if not self._stack:
            return None
        return self._stack[-1]

    def clear(self) -> None:
        self._stack = []

    @property
    def size(self) -> int:
        return len(self._stack)

    def __len__(self) -> int:
        return len(self._stack)
