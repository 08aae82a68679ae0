"""Tests for JSON persistence of engine state."""
import json
from datetime import datetime, timezone

import pytest

from skillrpg.api.state import build_engine
from skillrpg.core.errors import StorageError
from skillrpg.core.xp import suggest_line_xp
from skillrpg.core.storage import (
    EngineStorage,
    is_ledger_record,
    is_task_record,
)
from skillrpg.models.roster import Category, Fighter, Skill, SkillTree
from skillrpg.models.task import TaskStatus, normalize_status

from tests.conftest import NOW, make_task


@pytest.fixture
def storage(tmp_path) -> EngineStorage:
    return EngineStorage(tmp_path)


def _write_raw(storage: EngineStorage, name: str, payload) -> None:
    (storage.data_dir / name).write_text(json.dumps(payload), encoding="utf-8")


class TestStatusNormalization:
    """Test legacy status mapping."""

    @pytest.mark.parametrize("raw,expected", [
        ("draft", TaskStatus.TODO),
        ("submitted", TaskStatus.VALIDATION),
        ("approved", TaskStatus.DONE),
        ("in_progress", TaskStatus.IN_PROGRESS),
        ("archived", TaskStatus.ARCHIVED),
    ])
    def test_known_tags(self, raw, expected):
        assert normalize_status(raw) == expected

    def test_unknown_tag_defaults_to_todo(self):
        assert normalize_status("bogus") == TaskStatus.TODO
        assert normalize_status(None) == TaskStatus.TODO


class TestValidators:
    """Test payload shape checks."""

    def test_task_record(self):
        assert is_task_record({"id": "t1", "title": "A", "assignees": []})
        assert not is_task_record({"id": "t1", "title": "A"})
        assert not is_task_record(["t1"])

    def test_ledger_record(self):
        assert is_ledger_record({"f1": {"s1": 10}})
        assert not is_ledger_record({"f1": {"s1": "ten"}})
        assert not is_ledger_record({"f1": {"s1": True}})
        assert not is_ledger_record({"f1": [10]})


class TestEngineStorage:
    """Test save/load through a temp directory."""

    def test_missing_files_yield_defaults(self, storage):
        assert storage.load_tasks() == []
        assert storage.load_ledger() == {}
        assert storage.load_fighters() == []
        assert storage.load_fighter_skills() == {}
        assert storage.load_skill_tree().categories == []

    def test_tasks_round_trip(self, storage):
        task = make_task("t1", "Fix motor", approved_at=NOW)
        storage.save_tasks([task])
        loaded = storage.load_tasks()
        assert loaded == [task]

    def test_ledger_and_roster_round_trip(self, storage):
        storage.save_ledger({"f1": {"s1": 120}})
        storage.save_fighters([Fighter(id="f1", name="Ivan", callsign="Hawk")])
        storage.save_fighter_skills({"f1": {"s1": True}})

        assert storage.load_ledger() == {"f1": {"s1": 120}}
        assert storage.load_fighters()[0].callsign == "Hawk"
        assert storage.load_fighter_skills() == {"f1": {"s1": True}}

    def test_skill_tree_round_trip(self, storage):
        tree = SkillTree(categories=[Category(id="c1", name="Tactics", skills=[Skill(id="s1", name="Nav")])])
        storage.save_skill_tree(tree)
        assert storage.load_skill_tree() == tree

    def test_malformed_json_falls_back(self, storage):
        (storage.data_dir / "tasks.json").write_text("{not json", encoding="utf-8")
        assert storage.load_tasks() == []

    def test_invalid_shape_falls_back(self, storage):
        _write_raw(storage, "xp.json", {"f1": {"s1": "lots"}})
        assert storage.load_ledger() == {}

    def test_ledger_values_clamped(self, storage):
        _write_raw(storage, "xp.json", {"f1": {"s1": -5, "s2": 12.0}})
        assert storage.load_ledger() == {"f1": {"s1": 0, "s2": 12}}

    def test_legacy_task_records(self, storage):
        _write_raw(storage, "tasks.json", [{
            "id": "t1",
            "title": "Old task",
            "difficulty": 2,
            "status": "submitted",
            "taskNumber": 7,
            "createdAt": 1716206400000,
            "isPriority": True,
            "assignees": [{
                "fighterId": "f1",
                "skills": [{"skillId": "s1", "categoryId": "c1", "xpSuggested": 10, "xpApproved": 8}],
            }],
        }])

        task = storage.load_tasks()[0]

        assert task.status == TaskStatus.VALIDATION
        assert task.task_number == 7
        assert task.is_priority is True
        assert task.created_at is not None
        assert task.history == []
        line = task.assignees[0].skills[0]
        assert (line.skill_id, line.xp_suggested, line.xp_approved) == ("s1", 10, 8)

    def test_save_creates_directory(self, tmp_path):
        storage = EngineStorage(tmp_path / "nested" / "data")
        storage.save_ledger({})
        assert (tmp_path / "nested" / "data" / "xp.json").exists()


class TestMalformedRecords:
    """Nested garbage falls back to defaults instead of raising."""

    @pytest.mark.parametrize("overrides", [
        {"assignees": ["oops"]},
        {"assignees": [{"fighter_id": "f1", "skills": [7]}]},
        {"history": "bad"},
        {"comments": [None]},
        {"createdAt": 1e300},
        {"created_at": "not a date"},
    ])
    def test_bad_task_falls_back(self, storage, overrides):
        record = {"id": "t1", "title": "A", "difficulty": 1, "status": "todo", "assignees": []}
        record.update(overrides)
        _write_raw(storage, "tasks.json", [record])
        assert storage.load_tasks() == []

    def test_bad_category_falls_back(self, storage):
        _write_raw(storage, "skill_tree.json", {"version": 1, "categories": ["oops"]})
        assert storage.load_skill_tree().categories == []

    def test_bad_skill_falls_back(self, storage):
        _write_raw(storage, "skill_tree.json", {
            "version": 1,
            "categories": [{"id": "c1", "name": "Tactics", "skills": [3]}],
        })
        assert storage.load_skill_tree().categories == []

    def test_bad_fighter_falls_back(self, storage):
        _write_raw(storage, "fighters.json", [{"id": "f1"}])
        assert storage.load_fighters() == []

    def test_engine_boots_on_bad_data(self, tmp_path):
        storage = EngineStorage(tmp_path)
        _write_raw(storage, "tasks.json", [{"id": "t1", "title": "A", "assignees": [{"skills": [7]}]}])
        engine = build_engine(storage)
        assert engine.tasks.tasks == []


class TestTimezones:
    """Stored offsets load as naive local time."""

    @pytest.mark.parametrize("stamp", ["2024-05-20T12:00:00+00:00", "2024-05-20T12:00:00Z"])
    def test_aware_timestamps_become_naive(self, storage, stamp):
        _write_raw(storage, "tasks.json", [{
            "id": "t1", "title": "Fix motor", "difficulty": 3, "status": "done",
            "created_at": stamp, "approved_at": stamp, "assignees": [],
            "history": [{"from_status": None, "to_status": "todo", "changed_at": stamp}],
        }])
        task = storage.load_tasks()[0]

        expected = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert task.created_at.tzinfo is None
        assert task.created_at == expected
        assert task.history[0].changed_at.tzinfo is None

    def test_loaded_tasks_work_with_suggestions(self, storage):
        _write_raw(storage, "tasks.json", [{
            "id": "t1", "title": "Fix motor", "difficulty": 3, "status": "done",
            "created_at": "2024-05-20T12:00:00+00:00",
            "assignees": [{"fighter_id": "f1", "skills": [{"skill_id": "s1", "category_id": "c1"}]}],
        }])
        tasks = storage.load_tasks()

        xp = suggest_line_xp(tasks, "f1", "s1", difficulty=3, title="Fix motor", current_level=4)
        assert xp == 15


class TestAtomicWrite:
    """Saves replace the file without leaving temporaries behind."""

    def test_overwrite_leaves_single_file(self, storage):
        storage.save_ledger({"f1": {"s1": 10}})
        storage.save_ledger({"f1": {"s1": 20}})

        assert [p.name for p in storage.data_dir.iterdir()] == ["xp.json"]
        assert storage.load_ledger() == {"f1": {"s1": 20}}

    def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        storage = EngineStorage(blocker / "data")

        with pytest.raises(StorageError):
            storage.save_ledger({})
