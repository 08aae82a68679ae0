"""
Task Lifecycle API Routes.

Endpoints for the task board:
- Create, edit and delete tasks
- Move tasks along the status graph
- Approve tasks and credit XP
- Comment on tasks
- Board grouping and search
"""
from fastapi import APIRouter, Query
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

from skillrpg.api.state import get_engine
from skillrpg.config import get_settings
from skillrpg.core.errors import (
    InvalidTransitionError,
    TaskNotFoundError,
    ValidationError,
)
from skillrpg.core.task_lifecycle import is_transition_allowed
from skillrpg.core.xp import suggest_line_xp
from skillrpg.models.task import Assignee, AssigneeSkill, Task, TaskStatus

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================

class SkillLineRequest(BaseModel):
    """A skill line for one assignee."""
    skill_id: str = Field(..., description="Skill ID")
    category_id: str = Field(..., description="Category the skill belongs to")
    xp_suggested: Optional[int] = Field(None, ge=0, description="Suggested XP; computed when omitted")


class AssigneeRequest(BaseModel):
    """A fighter assigned to a task."""
    fighter_id: str = Field(..., description="Fighter ID")
    skills: List[SkillLineRequest] = Field(default_factory=list)


class CreateTaskRequest(BaseModel):
    """Request to create a task."""
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Optional details")
    difficulty: int = Field(..., ge=1, le=5, description="Difficulty 1-5")
    is_priority: bool = Field(False, description="Pin to the top of the board")
    assignees: List[AssigneeRequest] = Field(default_factory=list)


class UpdateTaskRequest(BaseModel):
    """Partial update of task details; only sent fields are applied."""
    title: Optional[str] = None
    description: Optional[str] = None
    is_priority: Optional[bool] = None
    difficulty: Optional[int] = Field(None, ge=1, le=5)


class AssigneesRequest(BaseModel):
    fighter_ids: List[str] = Field(..., description="Exact set of assigned fighters")


class StatusRequest(BaseModel):
    status: TaskStatus = Field(..., description="Target status")


class ApproveRequest(BaseModel):
    """Approved XP per fighter and skill; missing lines use the suggestion."""
    approved: Dict[str, Dict[str, int]] = Field(default_factory=dict)


class CommentRequest(BaseModel):
    message: str = Field(..., description="Comment text")
    author: Optional[str] = Field(None, description="Defaults to the configured author")


# =============================================================================
# Helper Functions
# =============================================================================

def require_task(task_id: str) -> Task:
    task = get_engine().tasks.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


def build_assignees(request: CreateTaskRequest) -> List[Assignee]:
    """Convert request assignees, filling in missing XP suggestions."""
    engine = get_engine()
    settings = get_settings()
    assignees = []
    for item in request.assignees:
        lines = []
        seen = set()
        for line in item.skills:
            if line.skill_id in seen:
                continue
            seen.add(line.skill_id)
            xp = line.xp_suggested
            if xp is None:
                xp = suggest_line_xp(
                    engine.tasks.tasks,
                    fighter_id=item.fighter_id,
                    skill_id=line.skill_id,
                    difficulty=request.difficulty,
                    title=request.title,
                    current_level=engine.ledger.level(item.fighter_id, line.skill_id),
                    window_days=settings.REPETITION_WINDOW_DAYS,
                )
            lines.append(AssigneeSkill(skill_id=line.skill_id, category_id=line.category_id, xp_suggested=xp))
        assignees.append(Assignee(fighter_id=item.fighter_id, skills=lines))
    return assignees


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=List[Dict[str, Any]])
async def list_tasks(status: Optional[TaskStatus] = None, fighter_id: Optional[str] = None):
    """List tasks, optionally filtered by status and assignee."""
    engine = get_engine()
    tasks = engine.tasks.tasks_for_fighter(fighter_id) if fighter_id else engine.tasks.tasks
    if status is not None:
        tasks = [t for t in tasks if t.status == status]
    return [t.to_dict() for t in tasks]


@router.get("/board")
async def task_board():
    """Tasks grouped into board columns."""
    grouped = get_engine().tasks.tasks_by_status()
    return {status.value: [t.to_dict() for t in tasks] for status, tasks in grouped.items()}


@router.get("/search")
async def search_tasks(q: str = Query(..., description="Title fragment or #number")):
    return [t.to_dict() for t in get_engine().tasks.search(q)]


@router.post("", status_code=201)
async def create_task(request: CreateTaskRequest):
    """Create a task in the todo column."""
    if not request.title.strip():
        raise ValidationError("title", "Task title must not be blank", request.title)

    engine = get_engine()
    task = engine.tasks.create_task(
        title=request.title,
        difficulty=request.difficulty,
        assignees=build_assignees(request),
        description=request.description,
        is_priority=request.is_priority,
    )
    engine.persist()
    return task.to_dict()


@router.get("/{task_id}")
async def get_task(task_id: str):
    return require_task(task_id).to_dict()


@router.patch("/{task_id}")
async def update_task(task_id: str, request: UpdateTaskRequest):
    """Apply only the fields present in the request body."""
    require_task(task_id)
    updates = request.model_dump(exclude_unset=True)
    if "title" in updates and not (updates["title"] or "").strip():
        raise ValidationError("title", "Task title must not be blank", updates["title"])

    engine = get_engine()
    task = engine.tasks.update_task_details(task_id, updates)
    engine.persist()
    return task.to_dict()


@router.put("/{task_id}/assignees")
async def update_assignees(task_id: str, request: AssigneesRequest):
    require_task(task_id)
    engine = get_engine()
    task = engine.tasks.update_task_assignees(task_id, request.fighter_ids)
    engine.persist()
    return task.to_dict()


@router.post("/{task_id}/status")
async def change_status(task_id: str, request: StatusRequest):
    """
    Move a task to a new status.

    Only edges of the task graph are accepted; the current status is a no-op.
    """
    current = require_task(task_id)
    if current.status != request.status and not is_transition_allowed(current.status, request.status):
        raise InvalidTransitionError(current.status.value, request.status.value)

    engine = get_engine()
    task = engine.tasks.update_task_status(task_id, request.status)
    if task is not current:
        engine.persist()
    return task.to_dict()


@router.post("/{task_id}/approve")
async def approve_task(task_id: str, request: ApproveRequest):
    """Approve a task and credit XP to every assignee line."""
    require_task(task_id)
    engine = get_engine()
    task = engine.tasks.approve_task(task_id, request.approved)
    engine.persist()

    levels = {
        assignee.fighter_id: {
            line.skill_id: engine.ledger.level(assignee.fighter_id, line.skill_id)
            for line in assignee.skills
        }
        for assignee in task.assignees
    }
    return {"task": task.to_dict(), "levels": levels}


@router.delete("/{task_id}")
async def delete_task(task_id: str):
    require_task(task_id)
    engine = get_engine()
    task = engine.tasks.delete_task(task_id)
    engine.persist()
    return {"success": True, "deleted": task.id, "undo": engine.undo_stack.peek().summary()}


@router.post("/{task_id}/comments")
async def add_comment(task_id: str, request: CommentRequest):
    """Add a comment. Blank messages are ignored and the task is returned unchanged."""
    current = require_task(task_id)
    engine = get_engine()
    author = request.author or get_settings().DEFAULT_COMMENT_AUTHOR
    task = engine.tasks.add_task_comment(task_id, request.message, author=author)
    if task is None:
        return current.to_dict()
    engine.persist()
    return task.to_dict()


@router.post("/{task_id}/comments/read")
async def mark_comments_read(task_id: str):
    current = require_task(task_id)
    engine = get_engine()
    task = engine.tasks.mark_task_comments_read(task_id)
    if task is not current:
        engine.persist()
    return task.to_dict()
