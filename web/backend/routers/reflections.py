from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from momentum.store import serialization as ser
from web.backend.routers import common

router = APIRouter()


class ReflectionRequest(BaseModel):
    period_type: str = "weekly"
    user_input: str = ""
    ai_feedback: str = ""
    conversation: Optional[str] = None
    momentum_score: Optional[int] = None
    persona_id: Optional[str] = None


@router.get("")
def list_reflections():
    service = common.get_persona_service()
    return {"reflections": [ser.reflection_to_dict(r) for r in service.list_reflections()]}


@router.post("")
def create_reflection(req: ReflectionRequest):
    """Store a finished coaching session. Reflections are never edited."""
    service = common.get_persona_service()
    reflection = service.add_reflection(
        period_type=req.period_type,
        user_input=req.user_input,
        ai_feedback=req.ai_feedback,
        conversation=req.conversation,
        momentum_score=req.momentum_score,
        persona_id=req.persona_id,
    )
    return {"success": True, "reflection": ser.reflection_to_dict(reflection)}
