"""
Roster, Skill Tree and Undo Replay.

Entity managers around the task engine:
- FighterRoster: fighters plus their ledger rows and skill flags
- SkillTreeManager: categories and skills
- UndoService: pops the undo stack and restores the deleted entity

Deletions push an UndoAction carrying everything needed to rebuild the
entity; UndoService hands that snapshot back to the owning manager.
"""

from copy import deepcopy
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging
import uuid

from skillrpg.core.ledger import XpLedger
from skillrpg.core.progression import ensure_minimum_xp, xp_threshold_for_level
from skillrpg.core.task_lifecycle import TaskLifecycleMachine
from skillrpg.core.undo import UndoAction, UndoActionType, UndoStack
from skillrpg.models.roster import Category, Fighter, Skill, SkillTree

logger = logging.getLogger(__name__)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class FighterRoster:
    """Fighters, their XP ledger rows and assigned-skill flags."""

    def __init__(
        self,
        ledger: XpLedger,
        undo_stack: UndoStack,
        task_machine: TaskLifecycleMachine,
        fighters: Optional[Iterable[Fighter]] = None,
        fighter_skills: Optional[Mapping[str, Mapping[str, bool]]] = None,
    ):
        self.ledger = ledger
        self.undo_stack = undo_stack
        self.task_machine = task_machine
        self.fighters: List[Fighter] = list(fighters or [])
        self.fighter_skills: Dict[str, Dict[str, bool]] = {
            fid: dict(flags) for fid, flags in (fighter_skills or {}).items()
        }
        for fighter in self.fighters:
            self.ledger.ensure_fighter(fighter.id)

    def get_fighter(self, fighter_id: str) -> Optional[Fighter]:
        for fighter in self.fighters:
            if fighter.id == fighter_id:
                return fighter
        return None

    def add_fighter(
        self,
        name: str,
        skill_ids: Iterable[str] = (),
        initial_levels: Optional[Mapping[str, int]] = None,
        **meta: Any,
    ) -> Fighter:
        """
        Add a fighter and seed their ledger row.

        Every known skill starts at the XP threshold of its initial level
        (level 0 -> 0 XP).
        """
        initial_levels = initial_levels or {}
        fighter = Fighter(id=_new_id("fighter"), name=name, **meta)
        row = {
            skill_id: xp_threshold_for_level(initial_levels.get(skill_id, 0))
            for skill_id in skill_ids
        }
        self.fighters = self.fighters + [fighter]
        self.ledger.set_row(fighter.id, row)
        logger.info(f"Added fighter {fighter.display_name} ({fighter.id})")
        return fighter

    def set_skill_level(self, fighter_id: str, skill_id: str, level: int) -> int:
        """
        Assign a mastery level by hand.

        The ledger is raised to the level's threshold when below it.

        Returns:
            The resulting ledger value
        """
        xp = ensure_minimum_xp(self.ledger.get(fighter_id, skill_id), level)
        self.ledger.set(fighter_id, skill_id, xp)
        return xp

    def skill_levels(self, fighter_id: str) -> Dict[str, int]:
        return self.ledger.levels(fighter_id)

    def delete_fighter(self, fighter_id: str) -> Optional[Fighter]:
        """Remove a fighter with their ledger row and task assignments."""
        fighter = self.get_fighter(fighter_id)
        xp_row = self.ledger.row(fighter_id)
        skills = self.fighter_skills.get(fighter_id)

        self.fighters = [f for f in self.fighters if f.id != fighter_id]
        self.fighter_skills.pop(fighter_id, None)
        self.ledger.remove_fighter(fighter_id)
        self.task_machine.remove_fighter_assignments(fighter_id)

        if fighter is None:
            return None

        self.undo_stack.push(UndoAction.create(
            UndoActionType.DELETE_FIGHTER,
            description=f'Видалено бійця "{fighter.display_name}"',
            data={"fighter": fighter, "xp": xp_row, "skills": skills},
        ))
        logger.info(f"Deleted fighter {fighter.display_name} ({fighter.id})")
        return fighter

    def restore_fighter(self, data: Mapping[str, Any]) -> None:
        fighter: Fighter = data["fighter"]
        if self.get_fighter(fighter.id) is None:
            self.fighters = self.fighters + [fighter]
        self.ledger.set_row(fighter.id, data.get("xp") or {})
        if data.get("skills"):
            self.fighter_skills[fighter.id] = dict(data["skills"])


class SkillTreeManager:
    """Categories and skills of the catalog."""

    def __init__(self, tree: SkillTree, undo_stack: UndoStack):
        self.tree = tree
        self.undo_stack = undo_stack

    def get_category(self, category_id: str) -> Optional[Category]:
        for category in self.tree.categories:
            if category.id == category_id:
                return category
        return None

    def find_skill(self, skill_id: str) -> Optional[tuple]:
        """Return (category, skill) holding skill_id, or None."""
        for category in self.tree.categories:
            for skill in category.skills:
                if skill.id == skill_id:
                    return category, skill
        return None

    def all_skill_ids(self) -> List[str]:
        return [s.id for c in self.tree.categories for s in c.skills]

    def add_category(self, name: str) -> Category:
        category = Category(id=_new_id("cat"), name=name, skills=[])
        self.tree.categories.append(category)
        return category

    def rename_category(self, category_id: str, new_name: str) -> Optional[Category]:
        category = self.get_category(category_id)
        if category is not None:
            category.name = new_name
        return category

    def delete_category(self, category_id: str) -> Optional[Category]:
        category = self.get_category(category_id)
        if category is None:
            return None
        self.tree.categories = [c for c in self.tree.categories if c.id != category_id]
        self.undo_stack.push(UndoAction.create(
            UndoActionType.DELETE_CATEGORY,
            description=f'Видалено категорію "{category.name}" ({len(category.skills)} навичок)',
            data={"category": deepcopy(category)},
        ))
        return category

    def add_skill(self, category_id: str, name: str) -> Optional[Skill]:
        category = self.get_category(category_id)
        if category is None:
            return None
        skill = Skill(id=_new_id("skill"), name=name, updated_at=datetime.now().isoformat())
        category.skills.append(skill)
        return skill

    def update_skill(self, updated: Skill) -> Optional[Skill]:
        for category in self.tree.categories:
            for index, skill in enumerate(category.skills):
                if skill.id == updated.id:
                    updated.updated_at = datetime.now().isoformat()
                    category.skills[index] = updated
                    return updated
        return None

    def delete_skill(self, skill_id: str) -> Optional[Skill]:
        found = self.find_skill(skill_id)
        if found is None:
            return None
        category, skill = found
        category.skills = [s for s in category.skills if s.id != skill_id]
        self.undo_stack.push(UndoAction.create(
            UndoActionType.DELETE_SKILL,
            description=f'Видалено навичку "{skill.name}"',
            data={"skill": deepcopy(skill), "category_id": category.id},
        ))
        return skill

    def move_skill_to_category(self, skill_id: str, target_category_id: str) -> bool:
        found = self.find_skill(skill_id)
        target = self.get_category(target_category_id)
        if found is None or target is None:
            return False
        source, skill = found
        source.skills = [s for s in source.skills if s.id != skill_id]
        target.skills.append(skill)
        return True

    def restore_skill(self, skill: Skill, category_id: str) -> bool:
        category = self.get_category(category_id)
        if category is None or any(s.id == skill.id for s in category.skills):
            return False
        category.skills.append(skill)
        return True

    def restore_category(self, category: Category) -> bool:
        if self.get_category(category.id) is not None:
            return False
        self.tree.categories.append(category)
        return True


class UndoService:
    """Replays the most recent undo action against its owning manager."""

    def __init__(
        self,
        undo_stack: UndoStack,
        roster: FighterRoster,
        tree_manager: SkillTreeManager,
        task_machine: TaskLifecycleMachine,
    ):
        self.undo_stack = undo_stack
        self.roster = roster
        self.tree_manager = tree_manager
        self.task_machine = task_machine

    @property
    def can_undo(self) -> bool:
        return self.undo_stack.size > 0

    def perform_undo(self) -> Optional[str]:
        """
        Restore the last deleted entity.

        Returns:
            The action's description, or None when there is nothing to undo
        """
        action = self.undo_stack.pop()
        if action is None:
            return None

        data = action.data
        if action.type == UndoActionType.DELETE_FIGHTER:
            self.roster.restore_fighter(data)
        elif action.type == UndoActionType.DELETE_TASK:
            self.task_machine.restore_task(data["task"])
        elif action.type == UndoActionType.DELETE_SKILL:
            skill: Skill = data["skill"]
            self.tree_manager.restore_skill(skill, data["category_id"])
            for flags in self.roster.fighter_skills.values():
                if skill.id in flags:
                    flags[skill.id] = True
        elif action.type == UndoActionType.DELETE_CATEGORY:
            self.tree_manager.restore_category(data["category"])

        logger.info(f"Undo {action.type.value}: {action.description}")
        return action.description
