"""
Engine State Persistence.

Saves and loads the task collection, XP ledger, roster and skill tree as
JSON files in a data directory. Loading never fails: a missing file yields
the default, and malformed content is logged and replaced by the default.
Legacy task statuses are normalized to the canonical enum on the way in.
"""
import json
import logging
import math
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from skillrpg.core.errors import StorageError
from skillrpg.models.roster import Fighter, SkillTree
from skillrpg.models.task import Task

logger = logging.getLogger("skillrpg.storage")

T = TypeVar("T")

TASKS_FILE = "tasks.json"
LEDGER_FILE = "xp.json"
FIGHTERS_FILE = "fighters.json"
FIGHTER_SKILLS_FILE = "fighter_skills.json"
SKILL_TREE_FILE = "skill_tree.json"


# =============================================================================
# Shape validators
# =============================================================================

def _is_dict_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, dict) for item in value)


def _is_optional_dict_list(value: Any) -> bool:
    return value is None or _is_dict_list(value)


def is_assignee_record(value: Any) -> bool:
    return isinstance(value, dict) and _is_optional_dict_list(value.get("skills"))


def is_task_record(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get("id"), str)
        and isinstance(value.get("title"), str)
        and isinstance(value.get("assignees"), list)
        and all(is_assignee_record(a) for a in value["assignees"])
        and _is_optional_dict_list(value.get("history"))
        and _is_optional_dict_list(value.get("comments"))
    )


def is_fighter_record(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("id"), str) and isinstance(value.get("name"), str)


def is_category_record(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get("id"), str)
        and isinstance(value.get("name"), str)
        and _is_optional_dict_list(value.get("skills"))
    )


def is_ledger_record(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    for row in value.values():
        if not isinstance(row, dict):
            return False
        for xp in row.values():
            if isinstance(xp, bool) or not isinstance(xp, (int, float)) or not math.isfinite(xp):
                return False
    return True


def is_fighter_skills_record(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(flags, dict) and all(isinstance(f, bool) for f in flags.values())
        for flags in value.values()
    )


def is_skill_tree_record(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get("categories"), list)
        and all(is_category_record(c) for c in value["categories"])
        and isinstance(value.get("version"), int)
    )


# =============================================================================
# Storage
# =============================================================================

class EngineStorage:
    """JSON file persistence for the engine's collections."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _read(self, name: str, default: T, parser: Callable[[Any], T], validator: Callable[[Any], bool]) -> T:
        path = self._path(name)
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}; falling back to default")
            return default
        if not validator(raw):
            logger.warning(f"Invalid payload in {path}; falling back to default")
            return default
        try:
            return parser(raw)
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError, OSError) as e:
            logger.warning(f"Failed to parse {path}: {e}; falling back to default")
            return default

    def _write(self, name: str, payload: Any) -> None:
        path = self._path(name)
        tmp_path = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Dump beside the target, then swap it in atomically
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, prefix=f".{name}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_path = tmp.name
                json.dump(payload, tmp, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Failed to write {name}: {e}", path=str(path)) from e

    # ---- tasks ----
    def load_tasks(self) -> List[Task]:
        return self._read(
            TASKS_FILE,
            [],
            lambda raw: [Task.from_dict(item) for item in raw],
            lambda raw: isinstance(raw, list) and all(is_task_record(item) for item in raw),
        )

    def save_tasks(self, tasks: List[Task]) -> None:
        self._write(TASKS_FILE, [task.to_dict() for task in tasks])

    # ---- ledger ----
    def load_ledger(self) -> Dict[str, Dict[str, int]]:
        return self._read(
            LEDGER_FILE,
            {},
            lambda raw: {fid: {sid: max(0, int(xp)) for sid, xp in row.items()} for fid, row in raw.items()},
            is_ledger_record,
        )

    def save_ledger(self, ledger: Dict[str, Dict[str, int]]) -> None:
        self._write(LEDGER_FILE, ledger)

    # ---- roster ----
    def load_fighters(self) -> List[Fighter]:
        return self._read(
            FIGHTERS_FILE,
            [],
            lambda raw: [Fighter.from_dict(item) for item in raw],
            lambda raw: isinstance(raw, list) and all(is_fighter_record(item) for item in raw),
        )

    def save_fighters(self, fighters: List[Fighter]) -> None:
        self._write(FIGHTERS_FILE, [f.to_dict() for f in fighters])

    def load_fighter_skills(self) -> Dict[str, Dict[str, bool]]:
        return self._read(FIGHTER_SKILLS_FILE, {}, lambda raw: raw, is_fighter_skills_record)

    def save_fighter_skills(self, fighter_skills: Dict[str, Dict[str, bool]]) -> None:
        self._write(FIGHTER_SKILLS_FILE, fighter_skills)

    # ---- skill tree ----
    def load_skill_tree(self, default: Optional[SkillTree] = None) -> SkillTree:
        return self._read(
            SKILL_TREE_FILE,
            default or SkillTree(),
            SkillTree.from_dict,
            is_skill_tree_record,
        )

    def save_skill_tree(self, tree: SkillTree) -> None:
        self._write(SKILL_TREE_FILE, tree.to_dict())
