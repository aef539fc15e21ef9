from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from momentum.exceptions import RecordNotFoundError
from momentum.store import serialization as ser
from web.backend.routers import common

router = APIRouter()


class DayToggleRequest(BaseModel):
    action_id: str


@router.get("/{persona_id}")
def get_month(persona_id: str, year: Optional[int] = None, month: Optional[int] = None):
    service = common.get_persona_service()
    today = service.today()
    year = today.year if year is None else year
    month = today.month if month is None else month
    if not 1 <= month <= 12:
        raise ValueError(f"month must be within 1..12, got {month}")
    cells = service.month_grid(year, month, persona_id)
    return {
        "year": year,
        "month": month,
        "days": [cell.to_dict() for cell in cells],
    }


@router.get("/{persona_id}/days/{day}")
def get_day(persona_id: str, day: str):
    service = common.get_persona_service()
    return service.day_detail(day, persona_id).to_dict()


@router.post("/{persona_id}/days/{day}/toggle")
def toggle_day(persona_id: str, day: str, req: DayToggleRequest):
    """Toggle from the day view; future dates are rejected with 400."""
    service = common.get_persona_service()
    persona = service.resolve_persona(persona_id)
    owner = service.store.persona_of_action(req.action_id)
    if owner is None or owner.id != persona.id:
        raise RecordNotFoundError("ElementalAction", req.action_id)
    log = service.toggle_from_calendar(req.action_id, day)
    return {
        "success": True,
        "log": ser.log_to_dict(log),
        "day": service.day_detail(day, persona_id).to_dict(),
        "scores": service.mutator.last_scores.to_dict() if service.mutator.last_scores else None,
    }
