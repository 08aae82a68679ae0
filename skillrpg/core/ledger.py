"""
XP Ledger.

fighter_id -> skill_id -> accumulated XP. The host owns the ledger and
injects it into the engine. Writes are copy-on-write: every change swaps in
a new mapping so a previously taken snapshot() never changes underneath its
holder.
"""
from typing import Dict, Mapping, Optional
import logging

from skillrpg.core.progression import level_from_xp, levels_from_ledger

logger = logging.getLogger(__name__)

LedgerData = Dict[str, Dict[str, int]]


class XpLedger:
    """Accumulated XP per fighter and skill."""

    def __init__(self, data: Optional[Mapping[str, Mapping[str, int]]] = None):
        self._data: LedgerData = {
            fighter_id: dict(row) for fighter_id, row in (data or {}).items()
        }

    def snapshot(self) -> LedgerData:
        """Current ledger value. Treat as read-only."""
        return self._data

    def get(self, fighter_id: str, skill_id: str) -> int:
        return self._data.get(fighter_id, {}).get(skill_id, 0)

    def row(self, fighter_id: str) -> Dict[str, int]:
        return dict(self._data.get(fighter_id, {}))

    def level(self, fighter_id: str, skill_id: str) -> int:
        """Mastery level derived from the stored XP."""
        return level_from_xp(self.get(fighter_id, skill_id))

    def levels(self, fighter_id: str) -> Dict[str, int]:
        return levels_from_ledger(self._data.get(fighter_id, {}))

    def set(self, fighter_id: str, skill_id: str, xp: int) -> None:
        next_data = dict(self._data)
        row = dict(next_data.get(fighter_id, {}))
        row[skill_id] = max(0, int(xp))
        next_data[fighter_id] = row
        self._data = next_data

    def apply_delta(self, fighter_id: str, skill_id: str, previous: int, current: int) -> int:
        """
        Replace a previously credited amount with a new one.

        The stored value becomes max(0, value - previous + current), so the
        same line can be re-approved any number of times without double
        counting.

        Returns:
            The new ledger value
        """
        before = self.get(fighter_id, skill_id)
        after = max(0, before - previous + current)
        self.set(fighter_id, skill_id, after)
        logger.debug(
            f"Ledger {fighter_id}/{skill_id}: {before} -> {after} "
            f"(replaced {previous} with {current})"
        )
        return after

    def ensure_fighter(self, fighter_id: str) -> None:
        if fighter_id not in self._data:
            next_data = dict(self._data)
            next_data[fighter_id] = {}
            self._data = next_data

    def set_row(self, fighter_id: str, row: Mapping[str, int]) -> None:
        next_data = dict(self._data)
        next_data[fighter_id] = {skill_id: max(0, int(xp)) for skill_id, xp in row.items()}
        self._data = next_data

    def remove_fighter(self, fighter_id: str) -> Optional[Dict[str, int]]:
        """Drop a fighter's row, returning it (None if absent)."""
        if fighter_id not in self._data:
            return None
        next_data = dict(self._data)
        removed = next_data.pop(fighter_id)
        self._data = next_data
        return removed

    def __contains__(self, fighter_id: str) -> bool:
        return fighter_id in self._data
