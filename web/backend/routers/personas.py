from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from momentum.store import serialization as ser
from web.backend.routers import common

router = APIRouter()


class PersonaRequest(BaseModel):
    name: str
    description: str = ""


class PersonaUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ActionPlan(BaseModel):
    title: str
    frequency: List[str] = []
    anchor_link: str = ""
    kickstart_version: str = ""


class BenchmarkPlan(BaseModel):
    title: str
    target_date: Optional[str] = None
    actions: List[ActionPlan] = []


class OnboardingPlan(BaseModel):
    """Persona extracted from the onboarding conversation."""
    name: str
    description: str = ""
    benchmarks: List[BenchmarkPlan] = []


def _slice_payload(data) -> Dict[str, Any]:
    return {
        "persona": ser.persona_to_dict(data.persona),
        "benchmarks": [ser.benchmark_to_dict(b) for b in data.benchmarks],
        "actions": [ser.action_to_dict(a) for a in data.actions],
        "logs": [ser.log_to_dict(log) for log in data.logs],
    }


@router.get("")
def list_personas():
    service = common.get_persona_service()
    return {
        "personas": [ser.persona_to_dict(p) for p in service.store.list_personas()],
        "active_persona_id": service.store.active_persona_id,
        "has_onboarded": service.store.has_onboarded,
    }


@router.post("")
def create_persona(req: PersonaRequest):
    service = common.get_persona_service()
    persona = service.create_persona(req.name, req.description)
    return {"success": True, "persona": ser.persona_to_dict(persona)}


@router.post("/onboard")
def onboard(plan: OnboardingPlan):
    """Persist a persona with its benchmarks and actions, then mark onboarding done."""
    service = common.get_persona_service()
    data = service.create_from_plan(plan.model_dump())
    return {"success": True, **_slice_payload(data)}


@router.get("/{persona_id}")
def get_persona(persona_id: str):
    service = common.get_persona_service()
    return _slice_payload(service.slice_for(persona_id))


@router.patch("/{persona_id}")
def update_persona(persona_id: str, req: PersonaUpdateRequest):
    service = common.get_persona_service()
    updates = req.model_dump(exclude_none=True)
    persona = service.update_persona(persona_id, **updates)
    return {"success": True, "persona": ser.persona_to_dict(persona)}


@router.delete("/{persona_id}")
def delete_persona(persona_id: str):
    service = common.get_persona_service()
    if not service.delete_persona(persona_id):
        raise HTTPException(status_code=404, detail="Persona not found")
    return {"success": True, "active_persona_id": service.store.active_persona_id}


@router.post("/{persona_id}/activate")
def activate_persona(persona_id: str):
    service = common.get_persona_service()
    snapshot = service.switch_persona(persona_id)
    return {"success": True, "scores": snapshot.to_dict()}


@router.get("/{persona_id}/scores")
def get_scores(persona_id: str):
    service = common.get_persona_service()
    return service.scores(persona_id).to_dict()


@router.get("/{persona_id}/progress")
def get_progress(persona_id: str):
    service = common.get_persona_service()
    return {"benchmarks": [bp.to_dict() for bp in service.benchmark_progress(persona_id)]}


@router.get("/{persona_id}/context")
def get_coaching_context(persona_id: str):
    """Inputs for the coaching prompt: scores, pacing and persona age."""
    service = common.get_persona_service()
    return service.coaching_context(persona_id)


@router.get("/{persona_id}/today")
def get_today_actions(persona_id: str):
    service = common.get_persona_service()
    return {
        "date": service.today().isoformat(),
        "actions": [ser.action_to_dict(a) for a in service.today_actions(persona_id)],
    }
