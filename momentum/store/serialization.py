"""
Dict <-> record conversion for the JSON record store.

Calendar dates are written as YYYY-MM-DD, instants as ISO 8601, weekday
names and booleans as-is, so every record round-trips losslessly.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from momentum.models import (
    Benchmark,
    BenchmarkStatus,
    DailyLog,
    ElementalAction,
    PeriodType,
    Persona,
    Reflection,
)
from momentum.schedule import WEEKDAYS, parse_frequency, to_calendar_date


def parse_instant(raw: Any) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))


def _instant_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def persona_to_dict(p: Persona) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "created_at": _instant_str(p.created_at),
    }


def dict_to_persona(d: Dict[str, Any]) -> Persona:
    return Persona(
        id=d["id"],
        name=d["name"],
        description=d.get("description") or "",
        created_at=parse_instant(d.get("created_at")) or datetime.now(),
    )


def benchmark_to_dict(b: Benchmark) -> dict:
    return {
        "id": b.id,
        "persona_id": b.persona_id,
        "title": b.title,
        "target_date": _instant_str(b.target_date),
        "status": b.status.value,
        "created_at": _instant_str(b.created_at),
    }


def dict_to_benchmark(d: Dict[str, Any]) -> Benchmark:
    return Benchmark(
        id=d["id"],
        persona_id=d["persona_id"],
        title=d["title"],
        target_date=parse_instant(d.get("target_date")),
        status=BenchmarkStatus(d.get("status", "active")),
        created_at=parse_instant(d.get("created_at")) or datetime.now(),
    )


def action_to_dict(a: ElementalAction) -> dict:
    return {
        "id": a.id,
        "benchmark_id": a.benchmark_id,
        "title": a.title,
        # stored in calendar order for stable diffs
        "frequency": [w.value for w in WEEKDAYS if w in a.frequency],
        "anchor_link": a.anchor_link,
        "kickstart_version": a.kickstart_version,
        "created_at": _instant_str(a.created_at),
    }


def dict_to_action(d: Dict[str, Any]) -> ElementalAction:
    return ElementalAction(
        id=d["id"],
        benchmark_id=d["benchmark_id"],
        title=d["title"],
        frequency=parse_frequency(d.get("frequency") or []),
        anchor_link=d.get("anchor_link") or "",
        kickstart_version=d.get("kickstart_version") or "",
        created_at=parse_instant(d.get("created_at")) or datetime.now(),
    )


def log_to_dict(log: DailyLog) -> dict:
    return {
        "id": log.id,
        "action_id": log.action_id,
        "log_date": log.log_date.isoformat(),
        "status": log.status,
        "created_at": _instant_str(log.created_at),
    }


def dict_to_log(d: Dict[str, Any]) -> DailyLog:
    status = d.get("status", False)
    if not isinstance(status, bool):
        raise ValueError(f"status must be a boolean, got {status!r}")
    return DailyLog(
        id=d["id"],
        action_id=d["action_id"],
        # legacy records carried a full timestamp
        log_date=to_calendar_date(d["log_date"]),
        status=status,
        created_at=parse_instant(d.get("created_at")) or datetime.now(),
    )


def reflection_to_dict(r: Reflection) -> dict:
    return {
        "id": r.id,
        "period_type": r.period_type.value,
        "user_input": r.user_input,
        "ai_feedback": r.ai_feedback,
        "momentum_score": r.momentum_score,
        "created_at": _instant_str(r.created_at),
        "conversation": r.conversation,
    }


def dict_to_reflection(d: Dict[str, Any]) -> Reflection:
    return Reflection(
        id=d["id"],
        period_type=PeriodType(d["period_type"]),
        user_input=d.get("user_input") or "",
        ai_feedback=d.get("ai_feedback") or "",
        momentum_score=int(d.get("momentum_score", 0)),
        created_at=parse_instant(d.get("created_at")) or datetime.now(),
        conversation=d.get("conversation"),
    )
