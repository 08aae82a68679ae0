"""
Shared engine state for the HTTP layer.

Holds the single in-process engine (ledger, undo stack, task machine,
roster, skill tree) that all routes operate on, and persists it after each
mutating request. Kept in its own module to avoid circular imports between
route modules.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import logging

from skillrpg.config import get_settings
from skillrpg.core.ledger import XpLedger
from skillrpg.core.roster import FighterRoster, SkillTreeManager, UndoService
from skillrpg.core.storage import EngineStorage
from skillrpg.core.task_lifecycle import TaskLifecycleMachine
from skillrpg.core.undo import UndoStack

logger = logging.getLogger(__name__)


@dataclass
class EngineState:
    """All collaborators of one engine instance."""
    ledger: XpLedger
    undo_stack: UndoStack
    tasks: TaskLifecycleMachine
    roster: FighterRoster
    skill_tree: SkillTreeManager
    undo: UndoService
    storage: Optional[EngineStorage] = None

    def persist(self) -> None:
        """Write every collection to storage (no-op without storage)."""
        if self.storage is None:
            return
        self.storage.save_tasks(self.tasks.tasks)
        self.storage.save_ledger(self.ledger.snapshot())
        self.storage.save_fighters(self.roster.fighters)
        self.storage.save_fighter_skills(self.roster.fighter_skills)
        self.storage.save_skill_tree(self.skill_tree.tree)


def build_engine(storage: Optional[EngineStorage] = None, undo_max_size: Optional[int] = None) -> EngineState:
    """Create an engine, loading collections from storage when given."""
    settings = get_settings()
    undo_stack = UndoStack(max_size=undo_max_size or settings.UNDO_MAX_SIZE)

    if storage is not None:
        ledger = XpLedger(storage.load_ledger())
        tasks = storage.load_tasks()
        fighters = storage.load_fighters()
        fighter_skills = storage.load_fighter_skills()
        tree = storage.load_skill_tree()
    else:
        from skillrpg.models.roster import SkillTree
        ledger = XpLedger()
        tasks, fighters, fighter_skills, tree = [], [], {}, SkillTree()

    machine = TaskLifecycleMachine(ledger=ledger, undo_stack=undo_stack, tasks=tasks)
    roster = FighterRoster(
        ledger=ledger,
        undo_stack=undo_stack,
        task_machine=machine,
        fighters=fighters,
        fighter_skills=fighter_skills,
    )
    tree_manager = SkillTreeManager(tree, undo_stack)
    undo = UndoService(undo_stack, roster, tree_manager, machine)

    logger.info(f"Engine ready: {len(tasks)} tasks, {len(fighters)} fighters")
    return EngineState(
        ledger=ledger,
        undo_stack=undo_stack,
        tasks=machine,
        roster=roster,
        skill_tree=tree_manager,
        undo=undo,
        storage=storage,
    )


_engine: Optional[EngineState] = None


def get_engine() -> EngineState:
    """Get the active engine, creating it from settings on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine(EngineStorage(get_settings().DATA_DIR))
    return _engine


def set_engine(engine: EngineState) -> None:
    global _engine
    _engine = engine


def reset_engine(data_dir: Optional[Union[str, Path]] = None) -> EngineState:
    """Replace the active engine; in-memory only when data_dir is None."""
    storage = EngineStorage(data_dir) if data_dir is not None else None
    engine = build_engine(storage)
    set_engine(engine)
    return engine
