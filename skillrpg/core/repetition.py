"""
Repetition Detection (anti-exploit).

Prevents XP farming by logging near-identical tasks for the same
fighter/skill within a short window:
- Title tokenization (Latin and Cyrillic aware)
- Jaccard similarity between token sets
- Counting similar recent tasks for a (fighter, skill) line
- Diminishing-returns factor derived from that count
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Set
import re

from skillrpg.models.task import Task, TaskStatus


DEFAULT_WINDOW_DAYS = 3
DEFAULT_FREE_QUOTA = 3
DEFAULT_STEP = 0.1
DEFAULT_MIN_FACTOR = 0.5
SIMILARITY_THRESHOLD = 0.5
MIN_TOKEN_LENGTH = 3

# Statuses whose work counts as already logged
COUNTED_STATUSES = (TaskStatus.DONE, TaskStatus.VALIDATION)

_NON_WORD_RE = re.compile(r"[^a-zа-яёіїєґ0-9\s]")


@dataclass
class RepetitionResult:
    """Similar-task count and the multiplier it produces."""
    count: int
    factor: float


def tokenize(text: Optional[str]) -> Set[str]:
    """
    Split a title into a set of comparable tokens.

    Lowercases, replaces everything except letters, digits and whitespace
    with spaces, and keeps tokens of at least three characters.
    """
    cleaned = _NON_WORD_RE.sub(" ", (text or "").lower())
    return {token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH}


def jaccard(a: Set[str], b: Set[str]) -> float:
    """Intersection over union; two empty sets count as identical."""
    if not a and not b:
        return 1.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    return 1.0 if union == 0 else intersection / union


def diminishing_returns(
    count: int,
    free_quota: int = DEFAULT_FREE_QUOTA,
    step: float = DEFAULT_STEP,
    min_factor: float = DEFAULT_MIN_FACTOR,
) -> float:
    """
    Multiplier applied to XP once repetitions exceed the free quota.

    Returns 1.0 while count <= free_quota, then drops by `step` per extra
    repetition down to `min_factor`.
    """
    if count <= free_quota:
        return 1.0
    penalty = (count - free_quota) * step
    return max(min_factor, 1 - penalty)


def count_similar_for_task_line(
    tasks: Iterable[Task],
    fighter_id: str,
    skill_id: str,
    difficulty: int,
    title: str = "",
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: Optional[datetime] = None,
) -> int:
    """
    Count recent tasks that look like a repeat of the given line.

    A task counts when it is done or in validation, its last activity falls
    within `window_days` of now, its difficulty is within one step, it has a
    line for the same fighter and skill, and its title tokens are at least
    50% similar.

    Args:
        tasks: Task collection to scan
        fighter_id: Fighter of the line being evaluated
        skill_id: Skill of the line being evaluated
        difficulty: Difficulty of the new task (1-5)
        title: Title of the new task
        window_days: Look-back window in days
        now: Reference time (defaults to datetime.now())

    Returns:
        Number of similar tasks
    """
    now = now or datetime.now()
    window = timedelta(days=window_days)
    title_tokens = tokenize(title)

    count = 0
    for task in tasks:
        if task.status not in COUNTED_STATUSES:
            continue
        if now - task.last_activity_at > window:
            continue
        if abs(task.difficulty - difficulty) > 1:
            continue
        if not task.has_line(fighter_id, skill_id):
            continue
        if jaccard(title_tokens, tokenize(task.title)) >= SIMILARITY_THRESHOLD:
            count += 1

    return count


def repetition_factor_from_tasks(
    tasks: Iterable[Task],
    fighter_id: str,
    skill_id: str,
    difficulty: int,
    title: str = "",
    window_days: int = DEFAULT_WINDOW_DAYS,
    free_quota: int = DEFAULT_FREE_QUOTA,
    step: float = DEFAULT_STEP,
    min_factor: float = DEFAULT_MIN_FACTOR,
    now: Optional[datetime] = None,
) -> RepetitionResult:
    """Count similar tasks and derive the diminishing-returns factor."""
    count = count_similar_for_task_line(
        tasks,
        fighter_id=fighter_id,
        skill_id=skill_id,
        difficulty=difficulty,
        title=title,
        window_days=window_days,
        now=now,
    )
    return RepetitionResult(
        count=count,
        factor=diminishing_returns(count, free_quota, step, min_factor),
    )
