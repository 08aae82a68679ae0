"""Domain models for tasks, fighters and the skill tree."""
from .task import (
    TaskStatus,
    Task,
    Assignee,
    AssigneeSkill,
    StatusHistoryEntry,
    TaskComment,
    normalize_status,
)
from .roster import Fighter, Skill, Category, SkillTree

__all__ = [
    "TaskStatus",
    "Task",
    "Assignee",
    "AssigneeSkill",
    "StatusHistoryEntry",
    "TaskComment",
    "normalize_status",
    "Fighter",
    "Skill",
    "Category",
    "SkillTree",
]
