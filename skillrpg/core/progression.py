"""
Skill Mastery Progression

Maps accumulated per-skill experience to mastery levels:
- XP thresholds for each mastery level (0-10)
- Level calculation from XP
- Progress tracking to the next level
- Ledger helpers for levels assigned by hand
"""

from typing import Dict, List, Mapping, Optional, Tuple


# XP required to reach each mastery level; index is the level.
XP_THRESHOLDS: List[int] = [
    0,     # 0
    40,    # 1
    120,   # 2
    240,   # 3
    400,   # 4
    600,   # 5
    900,   # 6
    1300,  # 7
    1800,  # 8
    2400,  # 9
    3000,  # 10
]

MIN_LEVEL = 0
MAX_LEVEL = 10


def _clamp_level(level: int) -> int:
    return max(MIN_LEVEL, min(level, MAX_LEVEL))


def xp_threshold_for_level(level: int) -> int:
    """
    Get the XP threshold required to reach a mastery level.

    Args:
        level: Target level (0-10); out-of-range values are clamped

    Returns:
        XP required to reach that level
    """
    return XP_THRESHOLDS[_clamp_level(level)]


def level_from_xp(xp: int) -> int:
    """
    Calculate the mastery level for an accumulated XP value.

    Args:
        xp: Total skill experience (negative values count as 0)

    Returns:
        Mastery level (0-10)
    """
    xp = max(0, xp)
    level = MIN_LEVEL
    for lvl, threshold in enumerate(XP_THRESHOLDS):
        if xp >= threshold:
            level = lvl
        else:
            break
    return level


def xp_to_next_level(current_xp: int) -> Optional[int]:
    """
    Calculate XP needed to reach the next mastery level.

    Returns:
        XP needed, or None if already at max level
    """
    current_level = level_from_xp(current_xp)
    if current_level >= MAX_LEVEL:
        return None
    return XP_THRESHOLDS[current_level + 1] - max(0, current_xp)


def get_xp_progress(current_xp: int) -> Tuple[int, int, float]:
    """
    Get XP progress within the current level.

    Returns:
        Tuple of (xp_in_level, level_span, progress_fraction)
    """
    current_xp = max(0, current_xp)
    current_level = level_from_xp(current_xp)
    current_threshold = XP_THRESHOLDS[current_level]

    if current_level >= MAX_LEVEL:
        return (current_xp - current_threshold, 0, 1.0)

    span = XP_THRESHOLDS[current_level + 1] - current_threshold
    xp_in_level = current_xp - current_threshold
    return (xp_in_level, span, xp_in_level / span)


def levels_from_ledger(ledger_row: Mapping[str, int]) -> Dict[str, int]:
    """Derive skill_id -> level for one fighter's ledger row."""
    return {skill_id: level_from_xp(int(xp or 0)) for skill_id, xp in ledger_row.items()}


def ensure_minimum_xp(current_xp: int, level: int) -> int:
    """
    Raise an XP value to the threshold of an explicitly assigned level.

    Values already at or above the threshold are returned unchanged, so
    assigning a lower level never removes earned experience.
    """
    return max(max(0, current_xp), xp_threshold_for_level(level))
