"""
Skill Catalog API Routes.

Categories and skills of the skill tree. Deletions are undoable.
"""
from dataclasses import replace

from fastapi import APIRouter
from pydantic import BaseModel, Field

from skillrpg.api.state import get_engine
from skillrpg.core.errors import ErrorCode, SkillRpgError, ValidationError

router = APIRouter()


class NameRequest(BaseModel):
    name: str = Field(..., description="Display name")


class MoveSkillRequest(BaseModel):
    category_id: str = Field(..., description="Target category")


def _not_found(code: ErrorCode, resource: str, identifier: str) -> SkillRpgError:
    return SkillRpgError(
        code=code,
        message=f"{resource} not found",
        details={"identifier": identifier},
        http_status=404,
    )


def _require_name(request: NameRequest) -> str:
    name = request.name.strip()
    if not name:
        raise ValidationError("name", "Name must not be blank", request.name)
    return name


@router.get("")
async def get_skill_tree():
    return get_engine().skill_tree.tree.to_dict()


@router.post("/categories", status_code=201)
async def add_category(request: NameRequest):
    engine = get_engine()
    category = engine.skill_tree.add_category(_require_name(request))
    engine.persist()
    return category.to_dict()


@router.put("/categories/{category_id}")
async def rename_category(category_id: str, request: NameRequest):
    engine = get_engine()
    category = engine.skill_tree.rename_category(category_id, _require_name(request))
    if category is None:
        raise _not_found(ErrorCode.CATEGORY_NOT_FOUND, "Category", category_id)
    engine.persist()
    return category.to_dict()


@router.delete("/categories/{category_id}")
async def delete_category(category_id: str):
    engine = get_engine()
    category = engine.skill_tree.delete_category(category_id)
    if category is None:
        raise _not_found(ErrorCode.CATEGORY_NOT_FOUND, "Category", category_id)
    engine.persist()
    return {"success": True, "deleted": category.id}


@router.post("/categories/{category_id}/skills", status_code=201)
async def add_skill(category_id: str, request: NameRequest):
    engine = get_engine()
    skill = engine.skill_tree.add_skill(category_id, _require_name(request))
    if skill is None:
        raise _not_found(ErrorCode.CATEGORY_NOT_FOUND, "Category", category_id)
    engine.persist()
    return skill.to_dict()


@router.put("/skills/{skill_id}")
async def rename_skill(skill_id: str, request: NameRequest):
    engine = get_engine()
    found = engine.skill_tree.find_skill(skill_id)
    if found is None:
        raise _not_found(ErrorCode.SKILL_NOT_FOUND, "Skill", skill_id)
    _, skill = found
    updated = engine.skill_tree.update_skill(replace(skill, name=_require_name(request)))
    engine.persist()
    return updated.to_dict()


@router.post("/skills/{skill_id}/move")
async def move_skill(skill_id: str, request: MoveSkillRequest):
    engine = get_engine()
    if not engine.skill_tree.move_skill_to_category(skill_id, request.category_id):
        raise _not_found(ErrorCode.SKILL_NOT_FOUND, "Skill or category", skill_id)
    engine.persist()
    return {"success": True}


@router.delete("/skills/{skill_id}")
async def delete_skill(skill_id: str):
    engine = get_engine()
    skill = engine.skill_tree.delete_skill(skill_id)
    if skill is None:
        raise _not_found(ErrorCode.SKILL_NOT_FOUND, "Skill", skill_id)
    engine.persist()
    return {"success": True, "deleted": skill.id}
