from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from momentum.store import serialization as ser
from web.backend.routers import common

router = APIRouter()


class BenchmarkRequest(BaseModel):
    persona_id: str
    title: str
    target_date: Optional[str] = None


class BenchmarkUpdateRequest(BaseModel):
    title: Optional[str] = None
    target_date: Optional[str] = None
    status: Optional[str] = None


class ActionRequest(BaseModel):
    benchmark_id: str
    title: str
    frequency: List[str] = []
    anchor_link: str = ""
    kickstart_version: str = ""


class ActionUpdateRequest(BaseModel):
    title: Optional[str] = None
    frequency: Optional[List[str]] = None
    anchor_link: Optional[str] = None
    kickstart_version: Optional[str] = None


class ToggleRequest(BaseModel):
    date: str


def _scores_payload(snapshot):
    return snapshot.to_dict() if snapshot is not None else None


# --- Benchmarks ---

@router.post("/benchmarks")
def create_benchmark(req: BenchmarkRequest):
    service = common.get_persona_service()
    benchmark = service.add_benchmark(req.persona_id, req.title, target_date=req.target_date)
    return {"success": True, "benchmark": ser.benchmark_to_dict(benchmark)}


@router.patch("/benchmarks/{benchmark_id}")
def update_benchmark(benchmark_id: str, req: BenchmarkUpdateRequest):
    service = common.get_persona_service()
    benchmark = service.update_benchmark(benchmark_id, **req.model_dump(exclude_none=True))
    return {"success": True, "benchmark": ser.benchmark_to_dict(benchmark)}


@router.delete("/benchmarks/{benchmark_id}")
def delete_benchmark(benchmark_id: str):
    """Delete a benchmark together with its actions and their logs."""
    service = common.get_persona_service()
    if service.store.get_benchmark(benchmark_id) is None:
        raise HTTPException(status_code=404, detail="Benchmark not found")
    snapshot = service.delete_benchmark(benchmark_id)
    return {"success": True, "scores": _scores_payload(snapshot)}


# --- Elemental actions ---

@router.post("/actions")
def create_action(req: ActionRequest):
    service = common.get_persona_service()
    action = service.add_action(
        req.benchmark_id,
        title=req.title,
        frequency=req.frequency,
        anchor_link=req.anchor_link,
        kickstart_version=req.kickstart_version,
    )
    return {"success": True, "action": ser.action_to_dict(action)}


@router.patch("/actions/{action_id}")
def update_action(action_id: str, req: ActionUpdateRequest):
    service = common.get_persona_service()
    action = service.update_action(action_id, **req.model_dump(exclude_none=True))
    return {"success": True, "action": ser.action_to_dict(action)}


@router.delete("/actions/{action_id}")
def delete_action(action_id: str):
    service = common.get_persona_service()
    if service.store.get_action(action_id) is None:
        raise HTTPException(status_code=404, detail="Action not found")
    snapshot = service.delete_action(action_id)
    return {"success": True, "scores": _scores_payload(snapshot)}


@router.post("/actions/{action_id}/toggle")
def toggle_action(action_id: str, req: ToggleRequest):
    """Flip completion for one day; the response carries the recomputed scores."""
    service = common.get_persona_service()
    log = service.toggle_log(action_id, req.date)
    return {
        "success": True,
        "log": ser.log_to_dict(log),
        "scores": _scores_payload(service.mutator.last_scores),
    }
