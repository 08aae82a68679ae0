"""
Undo API Routes.
"""
from fastapi import APIRouter

from skillrpg.api.state import get_engine
from skillrpg.core.errors import UndoEmptyError

router = APIRouter()


@router.get("")
async def peek_undo():
    """The action the next undo would restore, if any."""
    action = get_engine().undo_stack.peek()
    return {"can_undo": action is not None, "action": action.summary() if action else None}


@router.post("")
async def perform_undo():
    """Restore the most recently deleted entity."""
    engine = get_engine()
    description = engine.undo.perform_undo()
    if description is None:
        raise UndoEmptyError()
    engine.persist()
    return {"success": True, "restored": description, "can_undo": engine.undo.can_undo}
