"""
Tests for the HTTP layer.

Each test runs against a fresh in-memory engine.
"""
import pytest
from fastapi.testclient import TestClient

from skillrpg.api.state import reset_engine
from skillrpg.main import app


@pytest.fixture
def engine():
    return reset_engine()


@pytest.fixture
def client(engine) -> TestClient:
    return TestClient(app)


def _create_task(client, title="Fix motor", difficulty=3, assignees=None):
    response = client.post("/api/tasks", json={
        "title": title,
        "difficulty": difficulty,
        "assignees": assignees or [],
    })
    assert response.status_code == 201
    return response.json()


def _line(fighter_id="f1", skill_id="s1", xp=None):
    line = {"skill_id": skill_id, "category_id": "c1"}
    if xp is not None:
        line["xp_suggested"] = xp
    return {"fighter_id": fighter_id, "skills": [line]}


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json()["status"] == "online"

    def test_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["persistent"] is False


class TestTaskEndpoints:
    """Test task CRUD and the status graph."""

    def test_create_task(self, client):
        task = _create_task(client)
        assert task["status"] == "todo"
        assert task["task_number"] == 1
        assert len(task["history"]) == 1

    def test_create_computes_missing_suggestion(self, client):
        task = _create_task(client, assignees=[_line()])
        assert task["assignees"][0]["skills"][0]["xp_suggested"] == 18

    def test_create_keeps_given_suggestion(self, client):
        task = _create_task(client, assignees=[_line(xp=7)])
        assert task["assignees"][0]["skills"][0]["xp_suggested"] == 7

    def test_blank_title_rejected(self, client):
        response = client.post("/api/tasks", json={"title": "   ", "difficulty": 2})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_difficulty_out_of_range(self, client):
        response = client.post("/api/tasks", json={"title": "A", "difficulty": 9})
        assert response.status_code == 422

    def test_unknown_task(self, client):
        response = client.get("/api/tasks/missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TASK_NOT_FOUND"

    def test_list_filters_by_status(self, client):
        first = _create_task(client, title="A")
        _create_task(client, title="B")
        client.post(f"/api/tasks/{first['id']}/status", json={"status": "in_progress"})

        listed = client.get("/api/tasks", params={"status": "in_progress"}).json()
        assert [t["id"] for t in listed] == [first["id"]]

    def test_patch_applies_only_sent_fields(self, client):
        task = _create_task(client)
        updated = client.patch(f"/api/tasks/{task['id']}", json={"description": "Left engine"}).json()
        assert updated["description"] == "Left engine"
        assert updated["title"] == "Fix motor"

    def test_allowed_transition(self, client):
        task = _create_task(client)
        response = client.post(f"/api/tasks/{task['id']}/status", json={"status": "in_progress"})
        assert response.status_code == 200
        assert response.json()["status"] == "in_progress"

    def test_rejected_transition(self, client):
        task = _create_task(client)
        response = client.post(f"/api/tasks/{task['id']}/status", json={"status": "done"})
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "TASK_INVALID_TRANSITION"

    def test_same_status_is_noop(self, client):
        task = _create_task(client)
        response = client.post(f"/api/tasks/{task['id']}/status", json={"status": "todo"})
        assert response.status_code == 200
        assert len(response.json()["history"]) == 1

    def test_board_and_search(self, client):
        _create_task(client, title="Fix motor")
        _create_task(client, title="Clean rifle")

        board = client.get("/api/tasks/board").json()
        assert len(board["todo"]) == 2
        assert board["archived"] == []

        found = client.get("/api/tasks/search", params={"q": "rifle"}).json()
        assert [t["title"] for t in found] == ["Clean rifle"]

    def test_update_assignees(self, client):
        task = _create_task(client, assignees=[_line("f1")])
        updated = client.put(f"/api/tasks/{task['id']}/assignees", json={"fighter_ids": ["f2"]}).json()
        assert [a["fighter_id"] for a in updated["assignees"]] == ["f2"]


class TestApproval:
    """Test approval through the API."""

    def test_approve_credits_ledger(self, client, engine):
        task = _create_task(client, assignees=[_line(xp=40)])
        response = client.post(f"/api/tasks/{task['id']}/approve", json={})

        data = response.json()
        assert data["task"]["status"] == "done"
        assert data["levels"] == {"f1": {"s1": 1}}
        assert engine.ledger.get("f1", "s1") == 40

    def test_reapprove_adjusts(self, client, engine):
        task = _create_task(client, assignees=[_line(xp=40)])
        client.post(f"/api/tasks/{task['id']}/approve", json={})
        client.post(f"/api/tasks/{task['id']}/approve", json={"approved": {"f1": {"s1": 15}}})
        assert engine.ledger.get("f1", "s1") == 15


class TestComments:

    def test_comment_flow(self, client):
        task = _create_task(client)
        commented = client.post(f"/api/tasks/{task['id']}/comments", json={"message": "Well done"}).json()
        assert commented["has_unread_comments"] is True
        assert commented["comments"][0]["author"] == "Командир"

        read = client.post(f"/api/tasks/{task['id']}/comments/read").json()
        assert read["has_unread_comments"] is False
        assert read["comments"][0]["read_at"] is not None

    def test_blank_comment_ignored(self, client):
        task = _create_task(client)
        response = client.post(f"/api/tasks/{task['id']}/comments", json={"message": "  "})
        assert response.status_code == 200
        assert response.json()["comments"] == []


class TestUndoEndpoints:
    """Test deleting and restoring."""

    def test_delete_then_undo(self, client):
        task = _create_task(client)
        deleted = client.delete(f"/api/tasks/{task['id']}").json()
        assert deleted["undo"]["type"] == "delete_task"

        peek = client.get("/api/undo").json()
        assert peek["can_undo"] is True

        restored = client.post("/api/undo").json()
        assert "Fix motor" in restored["restored"]
        assert client.get(f"/api/tasks/{task['id']}").status_code == 200

    def test_undo_empty(self, client):
        response = client.post("/api/undo")
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "UNDO_EMPTY"


class TestProgressionEndpoints:
    """Test XP and level endpoints."""

    def test_thresholds(self, client):
        data = client.get("/api/progression/thresholds").json()
        assert data["thresholds"][0] == 0
        assert data["max_level"] == 10

    def test_level_lookup(self, client):
        data = client.get("/api/progression/level", params={"xp": 120}).json()
        assert data["level"] == 2
        assert data["xp_to_next_level"] == 120

    def test_suggest_xp(self, client):
        data = client.post("/api/progression/suggest-xp", json={"difficulty": 3, "is_novice": True}).json()
        assert data["xp"] == 18

    def test_suggest_line(self, client):
        data = client.post("/api/progression/suggest-line", json={
            "fighter_id": "f1", "skill_id": "s1", "difficulty": 3, "title": "Fix motor",
        }).json()
        assert data["xp"] == 18
        assert data["similar_tasks"] == 0
        assert data["repetition_factor"] == 1.0

    def test_unknown_fighter(self, client):
        response = client.get("/api/progression/fighters/missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "FIGHTER_NOT_FOUND"


class TestRosterEndpoints:
    """Test fighters and the skill catalog."""

    def test_fighter_progress(self, client):
        fighter = client.post("/api/fighters", json={"name": "Ivan", "initial_levels": {"s1": 2}}).json()
        progress = client.get(f"/api/progression/fighters/{fighter['id']}").json()
        assert progress[0]["skill_id"] == "s1"
        assert progress[0]["xp"] == 120
        assert progress[0]["level"] == 2

    def test_set_skill_level(self, client):
        fighter = client.post("/api/fighters", json={"name": "Ivan"}).json()
        data = client.put(f"/api/fighters/{fighter['id']}/skills/s1/level", json={"level": 3}).json()
        assert data["xp"] == 240
        assert data["level"] == 3

    def test_blank_fighter_name(self, client):
        assert client.post("/api/fighters", json={"name": " "}).status_code == 400

    def test_delete_unknown_fighter(self, client):
        assert client.delete("/api/fighters/missing").status_code == 404

    def test_skill_catalog(self, client):
        category = client.post("/api/skills/categories", json={"name": "Tactics"}).json()
        skill = client.post(f"/api/skills/categories/{category['id']}/skills", json={"name": "Navigation"}).json()

        tree = client.get("/api/skills").json()
        assert tree["categories"][0]["skills"][0]["id"] == skill["id"]

        renamed = client.put(f"/api/skills/skills/{skill['id']}", json={"name": "Land navigation"}).json()
        assert renamed["name"] == "Land navigation"

        assert client.delete(f"/api/skills/skills/{skill['id']}").status_code == 200
        assert client.delete(f"/api/skills/skills/{skill['id']}").status_code == 404
