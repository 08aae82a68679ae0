"""
XP Suggestion Calculator

Computes the recommended XP award for one (fighter, skill) line:
- Base XP by task difficulty
- Novice/challenge/quality modifiers, clamped
- Anti-exploit factor from repetition count
"""

from datetime import datetime
from typing import Dict, Iterable, Optional
import math

from skillrpg.core.repetition import diminishing_returns, repetition_factor_from_tasks
from skillrpg.models.task import Task


# Base XP awarded per difficulty (1-5)
BASE_XP_BY_DIFFICULTY: Dict[int, int] = {
    1: 5,
    2: 10,
    3: 15,
    4: 20,
    5: 25,
}

NOVICE_BONUS = 0.2
MIN_MODIFIER = 0.7
MAX_MODIFIER = 1.4

# Fighters at or below this level get the novice bonus
NOVICE_MAX_LEVEL = 1


def clamp_modifier(mod: float, min_mod: float = MIN_MODIFIER, max_mod: float = MAX_MODIFIER) -> float:
    """Clamp a stacked modifier into [min_mod, max_mod]."""
    return max(min_mod, min(max_mod, mod))


def round_half_up(value: float) -> int:
    """Round .5 upward instead of to the nearest even integer."""
    return int(math.floor(value + 0.5))


def compute_suggested_xp(
    difficulty: int,
    is_novice: bool = False,
    challenge: float = 0.0,
    quality_adj: float = 0.0,
    repetition_count: int = 1,
) -> int:
    """
    Compute the suggested XP for a task line.

    Args:
        difficulty: Task difficulty (1-5)
        is_novice: Whether the fighter is a novice in this skill (+20%)
        challenge: Extra challenge bonus in [0, 0.3]
        quality_adj: Quality adjustment in [-0.2, 0.2]
        repetition_count: Similar recent tasks for this line

    Returns:
        Rounded XP amount
    """
    base = BASE_XP_BY_DIFFICULTY[difficulty]
    novice_boost = NOVICE_BONUS if is_novice else 0.0
    mod = clamp_modifier(1 + novice_boost + challenge + quality_adj)
    anti_exploit = diminishing_returns(repetition_count)
    return round_half_up(base * mod * anti_exploit)


def suggest_line_xp(
    tasks: Iterable[Task],
    fighter_id: str,
    skill_id: str,
    difficulty: int,
    title: str = "",
    current_level: int = 0,
    window_days: int = 3,
    now: Optional[datetime] = None,
) -> int:
    """
    Suggest XP for a fighter/skill line of a new task from task history.

    The repetition count feeds the calculator and the resulting factor is
    applied once more to the rounded base, as the assignment form does.
    """
    tasks = list(tasks)
    rep = repetition_factor_from_tasks(
        tasks,
        fighter_id=fighter_id,
        skill_id=skill_id,
        difficulty=difficulty,
        title=title,
        window_days=window_days,
        now=now,
    )
    base = compute_suggested_xp(
        difficulty,
        is_novice=current_level <= NOVICE_MAX_LEVEL,
        repetition_count=max(1, rep.count),
    )
    return round_half_up(base * rep.factor)
