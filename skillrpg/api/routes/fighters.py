"""
Fighter Roster API Routes.
"""
from fastapi import APIRouter
from pydantic import BaseModel, Field
from typing import Dict, Optional

from skillrpg.api.state import get_engine
from skillrpg.core.errors import FighterNotFoundError, ValidationError

router = APIRouter()


class CreateFighterRequest(BaseModel):
    """Request to add a fighter to the roster."""
    name: str = Field(..., description="Display name")
    callsign: Optional[str] = None
    full_name: Optional[str] = None
    rank: Optional[str] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    initial_levels: Dict[str, int] = Field(default_factory=dict, description="skill_id -> starting level")


class SetLevelRequest(BaseModel):
    level: int = Field(..., ge=0, le=10)


@router.get("")
async def list_fighters():
    return [f.to_dict() for f in get_engine().roster.fighters]


@router.post("", status_code=201)
async def create_fighter(request: CreateFighterRequest):
    """Add a fighter; every catalog skill is seeded at its starting level."""
    if not request.name.strip():
        raise ValidationError("name", "Fighter name must not be blank", request.name)

    engine = get_engine()
    skill_ids = set(engine.skill_tree.all_skill_ids()) | set(request.initial_levels)
    fighter = engine.roster.add_fighter(
        request.name,
        skill_ids=sorted(skill_ids),
        initial_levels=request.initial_levels,
        callsign=request.callsign,
        full_name=request.full_name,
        rank=request.rank,
        unit=request.unit,
        notes=request.notes,
    )
    engine.persist()
    return fighter.to_dict()


@router.put("/{fighter_id}/skills/{skill_id}/level")
async def set_skill_level(fighter_id: str, skill_id: str, request: SetLevelRequest):
    """Assign a level by hand; the ledger is raised to the level's threshold."""
    engine = get_engine()
    if engine.roster.get_fighter(fighter_id) is None:
        raise FighterNotFoundError(fighter_id)
    xp = engine.roster.set_skill_level(fighter_id, skill_id, request.level)
    engine.persist()
    return {"fighter_id": fighter_id, "skill_id": skill_id, "xp": xp, "level": engine.ledger.level(fighter_id, skill_id)}


@router.delete("/{fighter_id}")
async def delete_fighter(fighter_id: str):
    engine = get_engine()
    fighter = engine.roster.delete_fighter(fighter_id)
    if fighter is None:
        raise FighterNotFoundError(fighter_id)
    engine.persist()
    return {"success": True, "deleted": fighter.id}
