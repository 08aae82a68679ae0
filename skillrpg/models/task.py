"""
Task Models.

Tasks award XP to assigned fighters per skill line:
- Status enum and legacy status normalization
- Assignees with per-skill suggested/approved XP
- Append-only status history
- Comments with read tracking

Instances are treated as immutable values by the lifecycle engine: every
mutation builds a new object with dataclasses.replace().
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from enum import Enum
from datetime import datetime


class TaskStatus(str, Enum):
    """Canonical task states."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    VALIDATION = "validation"
    DONE = "done"
    ARCHIVED = "archived"


# Status tags written by older versions of the host application
LEGACY_STATUS_ALIASES: Dict[str, TaskStatus] = {
    "draft": TaskStatus.TODO,
    "submitted": TaskStatus.VALIDATION,
    "approved": TaskStatus.DONE,
}


def normalize_status(value: Any, default: TaskStatus = TaskStatus.TODO) -> TaskStatus:
    """Map any stored status tag (canonical or legacy) to TaskStatus."""
    if isinstance(value, TaskStatus):
        return value
    if isinstance(value, str):
        if value in LEGACY_STATUS_ALIASES:
            return LEGACY_STATUS_ALIASES[value]
        try:
            return TaskStatus(value)
        except ValueError:
            pass
    return default


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dt_from_any(value: Any) -> Optional[datetime]:
    """Parse ISO strings or epoch milliseconds (the legacy storage format)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000)
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    # The engine compares against naive local time
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


@dataclass
class AssigneeSkill:
    """One XP line: a skill an assignee trains with this task."""
    skill_id: str
    category_id: str
    xp_suggested: int = 0
    xp_approved: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "category_id": self.category_id,
            "xp_suggested": self.xp_suggested,
            "xp_approved": self.xp_approved,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssigneeSkill":
        approved = data.get("xp_approved", data.get("xpApproved"))
        return cls(
            skill_id=str(data.get("skill_id", data.get("skillId", ""))),
            category_id=str(data.get("category_id", data.get("categoryId", ""))),
            xp_suggested=int(data.get("xp_suggested", data.get("xpSuggested", 0)) or 0),
            xp_approved=int(approved) if approved is not None else None,
        )


@dataclass
class Assignee:
    """A fighter assigned to a task with their skill lines."""
    fighter_id: str
    skills: List[AssigneeSkill] = field(default_factory=list)

    def has_skill(self, skill_id: str) -> bool:
        return any(line.skill_id == skill_id for line in self.skills)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fighter_id": self.fighter_id,
            "skills": [line.to_dict() for line in self.skills],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assignee":
        return cls(
            fighter_id=str(data.get("fighter_id", data.get("fighterId", ""))),
            skills=[AssigneeSkill.from_dict(s) for s in data.get("skills", [])],
        )


@dataclass(frozen=True)
class StatusHistoryEntry:
    """A recorded status transition. from_status is None only on creation."""
    from_status: Optional[TaskStatus]
    to_status: TaskStatus
    changed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_status": self.from_status.value if self.from_status else None,
            "to_status": self.to_status.value,
            "changed_at": _dt_to_str(self.changed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatusHistoryEntry":
        raw_from = data.get("from_status", data.get("fromStatus"))
        return cls(
            from_status=normalize_status(raw_from) if raw_from is not None else None,
            to_status=normalize_status(data.get("to_status", data.get("toStatus"))),
            changed_at=_dt_from_any(data.get("changed_at", data.get("changedAt"))) or datetime.now(),
        )


@dataclass
class TaskComment:
    """A comment left on a task."""
    id: str
    author: str
    message: str
    created_at: datetime
    read_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "message": self.message,
            "created_at": _dt_to_str(self.created_at),
            "read_at": _dt_to_str(self.read_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskComment":
        return cls(
            id=str(data.get("id", "")),
            author=str(data.get("author", "")),
            message=str(data.get("message", "")),
            created_at=_dt_from_any(data.get("created_at", data.get("createdAt"))) or datetime.now(),
            read_at=_dt_from_any(data.get("read_at", data.get("readAt"))),
        )


@dataclass
class Task:
    """
    A unit of work that awards XP on approval.

    task_number is the human-facing sequential identifier; id is the
    internal unique key.
    """
    id: str
    title: str
    difficulty: int
    status: TaskStatus
    created_at: datetime
    task_number: int = 0
    description: Optional[str] = None
    is_priority: bool = False
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    assignees: List[Assignee] = field(default_factory=list)
    history: List[StatusHistoryEntry] = field(default_factory=list)
    comments: List[TaskComment] = field(default_factory=list)
    has_unread_comments: bool = False

    @property
    def last_activity_at(self) -> datetime:
        """Most recent relevant timestamp: approval, then submission, then creation."""
        return self.approved_at or self.submitted_at or self.created_at

    def find_assignee(self, fighter_id: str) -> Optional[Assignee]:
        for assignee in self.assignees:
            if assignee.fighter_id == fighter_id:
                return assignee
        return None

    def has_line(self, fighter_id: str, skill_id: str) -> bool:
        """True if the fighter is assigned with the given skill."""
        return any(
            a.fighter_id == fighter_id and a.has_skill(skill_id)
            for a in self.assignees
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert task to a JSON-safe dictionary."""
        return {
            "id": self.id,
            "task_number": self.task_number,
            "title": self.title,
            "description": self.description,
            "difficulty": self.difficulty,
            "status": self.status.value,
            "is_priority": self.is_priority,
            "created_at": _dt_to_str(self.created_at),
            "submitted_at": _dt_to_str(self.submitted_at),
            "approved_at": _dt_to_str(self.approved_at),
            "assignees": [a.to_dict() for a in self.assignees],
            "history": [h.to_dict() for h in self.history],
            "comments": [c.to_dict() for c in self.comments],
            "has_unread_comments": self.has_unread_comments,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create a task from stored data, accepting legacy camelCase keys."""
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            difficulty=int(data.get("difficulty") or 1),
            status=normalize_status(data.get("status")),
            created_at=_dt_from_any(data.get("created_at", data.get("createdAt"))) or datetime.now(),
            task_number=int(data.get("task_number", data.get("taskNumber")) or 0),
            description=data.get("description"),
            is_priority=bool(data.get("is_priority", data.get("isPriority", False))),
            submitted_at=_dt_from_any(data.get("submitted_at", data.get("submittedAt"))),
            approved_at=_dt_from_any(data.get("approved_at", data.get("approvedAt"))),
            assignees=[Assignee.from_dict(a) for a in data.get("assignees", [])],
            history=[StatusHistoryEntry.from_dict(h) for h in data.get("history", []) or []],
            comments=[TaskComment.from_dict(c) for c in data.get("comments", []) or []],
            has_unread_comments=bool(data.get("has_unread_comments", data.get("hasUnreadComments", False))),
        )
