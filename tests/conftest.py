"""
Skill RPG - Test Configuration and Fixtures
Shared test utilities and fixtures for pytest.
"""
import pytest
from datetime import datetime, timedelta
from typing import List, Optional
import sys
import os

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from skillrpg.core.ledger import XpLedger
from skillrpg.core.task_lifecycle import TaskLifecycleMachine
from skillrpg.core.undo import UndoStack
from skillrpg.models.task import (
    Assignee,
    AssigneeSkill,
    StatusHistoryEntry,
    Task,
    TaskStatus,
)


NOW = datetime(2024, 5, 20, 12, 0, 0)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ==================== Engine Fixtures ====================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger() -> XpLedger:
    return XpLedger()


@pytest.fixture
def undo_stack() -> UndoStack:
    return UndoStack()


@pytest.fixture
def machine(ledger, undo_stack, clock) -> TaskLifecycleMachine:
    """Empty task engine wired to the shared ledger, undo stack and clock."""
    return TaskLifecycleMachine(ledger=ledger, undo_stack=undo_stack, clock=clock)


# ==================== Task Factories ====================

def make_assignee(fighter_id: str = "fighter-1", skill_id: str = "skill-1",
                  category_id: str = "cat-1", xp_suggested: int = 10) -> Assignee:
    """One fighter with a single skill line."""
    return Assignee(
        fighter_id=fighter_id,
        skills=[AssigneeSkill(skill_id=skill_id, category_id=category_id, xp_suggested=xp_suggested)],
    )


def make_task(
    task_id: str,
    title: str,
    difficulty: int = 3,
    status: TaskStatus = TaskStatus.DONE,
    approved_at: Optional[datetime] = None,
    created_at: Optional[datetime] = None,
    assignees: Optional[List[Assignee]] = None,
    task_number: int = 1,
) -> Task:
    """Build a stored task directly, bypassing the engine."""
    created = created_at or approved_at or NOW
    return Task(
        id=task_id,
        title=title,
        difficulty=difficulty,
        status=status,
        created_at=created,
        approved_at=approved_at,
        task_number=task_number,
        assignees=assignees if assignees is not None else [make_assignee()],
        history=[StatusHistoryEntry(from_status=None, to_status=TaskStatus.TODO, changed_at=created)],
    )
