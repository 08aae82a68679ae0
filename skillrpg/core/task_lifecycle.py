"""
Task Lifecycle Engine.

Owns the task collection and drives tasks through their status graph:
- Task creation with sequential task numbers
- Status transitions with append-only history
- Detail/assignee edits
- Approval with XP ledger reconciliation
- Comments with unread tracking
- Deletion recorded on the undo stack

Every mutation builds new Task objects and a new collection list; task
references handed out earlier stay valid snapshots. Operations on an unknown
task id are silent no-ops that return None.
"""

from copy import deepcopy
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
import logging
import uuid

from skillrpg.core.ledger import XpLedger
from skillrpg.core.undo import UndoAction, UndoActionType, UndoStack
from skillrpg.models.task import (
    Assignee,
    StatusHistoryEntry,
    Task,
    TaskComment,
    TaskStatus,
)

logger = logging.getLogger("skillrpg.tasks")

DEFAULT_COMMENT_AUTHOR = "Командир"
DEFAULT_SEARCH_LIMIT = 8

# Legal edges of the task graph. The engine records any transition it is
# given; callers validate against this table.
ALLOWED_TRANSITIONS: Dict[TaskStatus, frozenset] = {
    TaskStatus.TODO: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.VALIDATION}),
    TaskStatus.VALIDATION: frozenset({TaskStatus.DONE}),
    TaskStatus.DONE: frozenset({TaskStatus.ARCHIVED}),
    TaskStatus.ARCHIVED: frozenset({TaskStatus.TODO}),
}

DETAIL_FIELDS = ("title", "description", "is_priority", "difficulty")

ApprovalMap = Mapping[str, Mapping[str, int]]


def is_transition_allowed(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """Check whether from_status -> to_status is an edge of the task graph."""
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class TaskLifecycleMachine:
    """
    Task collection plus the operations that move tasks through their life.

    The XP ledger and undo stack are injected collaborators owned by the
    host; the clock is injectable for deterministic tests.
    """

    def __init__(
        self,
        ledger: XpLedger,
        undo_stack: UndoStack,
        tasks: Optional[Iterable[Task]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.ledger = ledger
        self.undo_stack = undo_stack
        self._tasks: List[Task] = list(tasks or [])
        self._clock = clock or datetime.now

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def tasks(self) -> List[Task]:
        """Current collection value. Treat as read-only."""
        return self._tasks

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def next_task_number(self) -> int:
        return max((task.task_number for task in self._tasks), default=0) + 1

    def tasks_by_status(self) -> Dict[TaskStatus, List[Task]]:
        """Group tasks by status; archived tasks newest first."""
        grouped: Dict[TaskStatus, List[Task]] = {status: [] for status in TaskStatus}
        for task in self._tasks:
            grouped[task.status].append(task)
        grouped[TaskStatus.ARCHIVED].sort(
            key=lambda t: t.approved_at or t.created_at, reverse=True
        )
        return grouped

    def tasks_for_fighter(self, fighter_id: str) -> List[Task]:
        return [t for t in self._tasks if t.find_assignee(fighter_id) is not None]

    def search(self, term: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Task]:
        """Match tasks by title substring or by task number ("#12" or "12")."""
        term = (term or "").strip().lower()
        if not term:
            return []
        number_text = term.lstrip("#")
        number = int(number_text) if number_text.isdigit() else None

        matches = []
        for task in self._tasks:
            if term in (task.title or "").lower() or (number is not None and task.task_number == number):
                matches.append(task)
                if len(matches) >= limit:
                    break
        return matches

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _swap(self, updated: Task) -> None:
        self._tasks = [updated if t.id == updated.id else t for t in self._tasks]

    def _with_transition(self, task: Task, to_status: TaskStatus, at: datetime) -> List[StatusHistoryEntry]:
        return task.history + [StatusHistoryEntry(from_status=task.status, to_status=to_status, changed_at=at)]

    # =========================================================================
    # CREATION / STATUS
    # =========================================================================

    def create_task(
        self,
        title: str,
        difficulty: int,
        assignees: Optional[Iterable[Assignee]] = None,
        description: Optional[str] = None,
        is_priority: Optional[bool] = None,
    ) -> Task:
        """
        Create a task in `todo` and prepend it to the collection.

        The title is stored as given; rejecting blank titles is the
        caller's job.

        Returns:
            The created task
        """
        timestamp = self._clock()
        task = Task(
            id=_new_id("task"),
            title=title,
            description=description,
            difficulty=difficulty,
            status=TaskStatus.TODO,
            created_at=timestamp,
            task_number=self.next_task_number(),
            is_priority=bool(is_priority) if is_priority is not None else False,
            assignees=deepcopy(list(assignees or [])),
            history=[StatusHistoryEntry(from_status=None, to_status=TaskStatus.TODO, changed_at=timestamp)],
            comments=[],
            has_unread_comments=False,
        )
        self._tasks = [task] + self._tasks
        logger.info(f"Created task #{task.task_number} ({task.id}): {title!r}")
        return task

    def update_task_status(self, task_id: str, status: TaskStatus) -> Optional[Task]:
        """
        Move a task to a new status, appending a history entry.

        Entering `validation` stamps submitted_at and entering `done` stamps
        approved_at. Moving to the current status returns the same task
        object and records nothing.
        """
        task = self.get_task(task_id)
        if task is None:
            logger.debug(f"Status change ignored, unknown task {task_id}")
            return None
        status = TaskStatus(status)
        if task.status == status:
            return task

        timestamp = self._clock()
        updated = replace(
            task,
            status=status,
            submitted_at=timestamp if status == TaskStatus.VALIDATION else task.submitted_at,
            approved_at=timestamp if status == TaskStatus.DONE else task.approved_at,
            history=self._with_transition(task, status, timestamp),
        )
        self._swap(updated)
        logger.info(f"Task #{task.task_number}: {task.status.value} -> {status.value}")
        return updated

    # =========================================================================
    # EDITS
    # =========================================================================

    def update_task_details(self, task_id: str, updates: Mapping[str, Any]) -> Optional[Task]:
        """
        Apply a partial update of title, description, is_priority, difficulty.

        Only keys present in `updates` are applied, so an empty description
        clears it. A non-string title and a difficulty of None are ignored.
        """
        task = self.get_task(task_id)
        if task is None:
            return None

        changes: Dict[str, Any] = {}
        if isinstance(updates.get("title"), str):
            changes["title"] = updates["title"]
        if "description" in updates:
            changes["description"] = updates["description"]
        if "is_priority" in updates:
            changes["is_priority"] = bool(updates["is_priority"])
        if "difficulty" in updates and updates["difficulty"]:
            changes["difficulty"] = updates["difficulty"]

        updated = replace(task, **changes)
        self._swap(updated)
        return updated

    def update_task_assignees(self, task_id: str, fighter_ids: Iterable[str]) -> Optional[Task]:
        """
        Make the assignee list match exactly the given fighter ids.

        Retained assignees keep their skill lines, new ones start with none.
        """
        task = self.get_task(task_id)
        if task is None:
            return None

        target_ids = list(dict.fromkeys(fighter_ids))
        kept = [a for a in task.assignees if a.fighter_id in target_ids]
        kept_ids = {a.fighter_id for a in kept}
        created = [Assignee(fighter_id=fid, skills=[]) for fid in target_ids if fid not in kept_ids]

        updated = replace(task, assignees=kept + created)
        self._swap(updated)
        return updated

    # =========================================================================
    # APPROVAL
    # =========================================================================

    def approve_task(self, task_id: str, approved: Optional[ApprovalMap] = None) -> Optional[Task]:
        """
        Approve a task and credit XP to the ledger.

        Each line's xp_approved becomes approved[fighter][skill], falling
        back to xp_suggested. The ledger replaces whatever the line credited
        before, so re-approval adjusts instead of adding twice.

        Args:
            task_id: Task to approve
            approved: Optional per fighter/skill XP overrides

        Returns:
            The approved task, or None if the id is unknown
        """
        task = self.get_task(task_id)
        if task is None:
            logger.debug(f"Approval ignored, unknown task {task_id}")
            return None
        approved = approved or {}
        timestamp = self._clock()

        new_assignees = []
        for assignee in task.assignees:
            overrides = approved.get(assignee.fighter_id, {})
            lines = []
            for line in assignee.skills:
                override = overrides.get(line.skill_id)
                current = override if override is not None else line.xp_suggested
                previous = line.xp_approved if line.xp_approved is not None else 0
                self.ledger.apply_delta(
                    assignee.fighter_id,
                    line.skill_id,
                    previous=max(0, previous),
                    current=max(0, current),
                )
                lines.append(replace(line, xp_approved=current))
            new_assignees.append(replace(assignee, skills=lines))

        updated = replace(
            task,
            status=TaskStatus.DONE,
            approved_at=timestamp,
            history=self._with_transition(task, TaskStatus.DONE, timestamp),
            assignees=new_assignees,
        )
        self._swap(updated)
        logger.info(f"Approved task #{task.task_number} ({task.id})")
        return updated

    # =========================================================================
    # DELETION
    # =========================================================================

    def delete_task(self, task_id: str) -> Optional[Task]:
        """Remove a task and record it on the undo stack."""
        task = self.get_task(task_id)
        if task is None:
            return None

        self._tasks = [t for t in self._tasks if t.id != task_id]
        self.undo_stack.push(UndoAction.create(
            UndoActionType.DELETE_TASK,
            description=f'Видалено задачу "{task.title}"',
            data={"task": task},
            timestamp=self._clock(),
        ))
        logger.info(f"Deleted task #{task.task_number} ({task.id})")
        return task

    def restore_task(self, task: Task) -> bool:
        """Put a deleted task back at the front. False if the id exists."""
        if self.get_task(task.id) is not None:
            return False
        self._tasks = [task] + self._tasks
        return True

    def remove_fighter_assignments(self, fighter_id: str) -> int:
        """Drop a fighter from every task. Returns how many tasks changed."""
        changed = 0
        next_tasks = []
        for task in self._tasks:
            if task.find_assignee(fighter_id) is None:
                next_tasks.append(task)
                continue
            next_tasks.append(replace(
                task,
                assignees=[a for a in task.assignees if a.fighter_id != fighter_id],
            ))
            changed += 1
        if changed:
            self._tasks = next_tasks
        return changed

    # =========================================================================
    # COMMENTS
    # =========================================================================

    def add_task_comment(
        self,
        task_id: str,
        message: str,
        author: str = DEFAULT_COMMENT_AUTHOR,
    ) -> Optional[Task]:
        """Append a trimmed comment and flag the task unread. Blank messages are dropped."""
        trimmed = (message or "").strip()
        if not trimmed:
            return None
        task = self.get_task(task_id)
        if task is None:
            return None

        comment = TaskComment(
            id=_new_id("comment"),
            author=author,
            message=trimmed,
            created_at=self._clock(),
        )
        updated = replace(task, comments=task.comments + [comment], has_unread_comments=True)
        self._swap(updated)
        return updated

    def mark_task_comments_read(self, task_id: str) -> Optional[Task]:
        """Stamp read_at on unread comments and clear the unread flag."""
        task = self.get_task(task_id)
        if task is None:
            return None

        unread = task.has_unread_comments or any(c.read_at is None for c in task.comments)
        if not unread:
            return task

        now = self._clock()
        comments = [c if c.read_at is not None else replace(c, read_at=now) for c in task.comments]
        updated = replace(task, comments=comments, has_unread_comments=False)
        self._swap(updated)
        return updated
