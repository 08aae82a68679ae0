"""
Skill Progression API Routes.

Endpoints for XP and mastery levels:
- Level thresholds and level lookup
- Fighter progression per skill
- XP suggestion for a planned task line
"""
from fastapi import APIRouter, Query
from pydantic import BaseModel, Field
from typing import List, Optional

from skillrpg.api.state import get_engine
from skillrpg.config import get_settings
from skillrpg.core.errors import FighterNotFoundError
from skillrpg.core.progression import (
    XP_THRESHOLDS,
    MAX_LEVEL,
    level_from_xp,
    xp_to_next_level,
    get_xp_progress,
)
from skillrpg.core.repetition import repetition_factor_from_tasks
from skillrpg.core.xp import compute_suggested_xp, suggest_line_xp

router = APIRouter()


# =============================================================================
# Request/Response Models
# =============================================================================

class SuggestXPRequest(BaseModel):
    """Request to compute suggested XP from explicit modifiers."""
    difficulty: int = Field(..., ge=1, le=5, description="Task difficulty")
    is_novice: bool = Field(False, description="Novice bonus (+20%)")
    challenge: float = Field(0.0, ge=0.0, le=0.3, description="Challenge bonus")
    quality_adj: float = Field(0.0, ge=-0.2, le=0.2, description="Quality adjustment")
    repetition_count: int = Field(1, ge=0, description="Similar recent tasks")


class SuggestLineRequest(BaseModel):
    """Request to suggest XP for a fighter/skill line from task history."""
    fighter_id: str
    skill_id: str
    difficulty: int = Field(..., ge=1, le=5)
    title: str = ""


class SkillProgress(BaseModel):
    """Progress of one fighter in one skill."""
    skill_id: str
    xp: int
    level: int
    xp_in_level: int
    level_span: int
    progress: float
    xp_to_next_level: Optional[int]


def build_skill_progress(skill_id: str, xp: int) -> SkillProgress:
    xp_in_level, span, progress = get_xp_progress(xp)
    return SkillProgress(
        skill_id=skill_id,
        xp=xp,
        level=level_from_xp(xp),
        xp_in_level=xp_in_level,
        level_span=span,
        progress=progress,
        xp_to_next_level=xp_to_next_level(xp),
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/thresholds")
async def get_thresholds():
    """The XP table: index is the mastery level."""
    return {"thresholds": XP_THRESHOLDS, "max_level": MAX_LEVEL}


@router.get("/level")
async def get_level(xp: int = Query(..., ge=0, description="Accumulated XP")):
    return {"xp": xp, "level": level_from_xp(xp), "xp_to_next_level": xp_to_next_level(xp)}


@router.get("/fighters/{fighter_id}", response_model=List[SkillProgress])
async def get_fighter_progress(fighter_id: str):
    """Per-skill XP and level for a fighter."""
    engine = get_engine()
    if engine.roster.get_fighter(fighter_id) is None:
        raise FighterNotFoundError(fighter_id)
    row = engine.ledger.row(fighter_id)
    return [build_skill_progress(skill_id, xp) for skill_id, xp in sorted(row.items())]


@router.post("/suggest-xp")
async def suggest_xp(request: SuggestXPRequest):
    """Compute suggested XP from explicit modifiers."""
    return {
        "xp": compute_suggested_xp(
            request.difficulty,
            is_novice=request.is_novice,
            challenge=request.challenge,
            quality_adj=request.quality_adj,
            repetition_count=request.repetition_count,
        )
    }


@router.post("/suggest-line")
async def suggest_line(request: SuggestLineRequest):
    """
    Suggest XP for a planned task line.

    Uses the fighter's current level for the novice bonus and recent
    similar tasks for the repetition penalty.
    """
    engine = get_engine()
    window_days = get_settings().REPETITION_WINDOW_DAYS
    level = engine.ledger.level(request.fighter_id, request.skill_id)
    rep = repetition_factor_from_tasks(
        engine.tasks.tasks,
        fighter_id=request.fighter_id,
        skill_id=request.skill_id,
        difficulty=request.difficulty,
        title=request.title,
        window_days=window_days,
    )
    xp = suggest_line_xp(
        engine.tasks.tasks,
        fighter_id=request.fighter_id,
        skill_id=request.skill_id,
        difficulty=request.difficulty,
        title=request.title,
        current_level=level,
        window_days=window_days,
    )
    return {
        "xp": xp,
        "current_level": level,
        "similar_tasks": rep.count,
        "repetition_factor": rep.factor,
    }
