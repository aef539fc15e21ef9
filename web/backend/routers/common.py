from typing import Any, Dict, Optional

from momentum.exceptions import FutureDateError, MomentumError, RecordNotFoundError
from momentum.persona_service import PersonaService


def get_persona_service() -> PersonaService:
    return PersonaService()


def error_status(exc: Exception) -> int:
    if isinstance(exc, RecordNotFoundError):
        return 404
    if isinstance(exc, (FutureDateError, ValueError)):
        return 400
    return 500


def error_body(exc: Exception) -> Dict[str, Any]:
    hint: Optional[str] = None
    if isinstance(exc, MomentumError):
        message, hint = exc.message, exc.hint
    else:
        message = str(exc)
    return {"detail": message, "hint": hint}
