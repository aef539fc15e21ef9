"""
Persona domain service.

Wires the record store, the log mutator and the derivations together for
one explicitly chosen persona. Every mutation is written to the audit log;
every mutation that can move a score republishes it.
"""
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from momentum import calendar_view, momentum_engine
from momentum.event_log import append_event
from momentum.exceptions import FutureDateError, RecordNotFoundError
from momentum.log_mutator import LogMutator
from momentum.logger import get_logger
from momentum.models import (
    Benchmark,
    BenchmarkStatus,
    DailyLog,
    ElementalAction,
    PeriodType,
    Persona,
    Reflection,
)
from momentum.momentum_engine import ScoreSnapshot
from momentum.schedule import DateLike, due_actions, local_today, to_calendar_date
from momentum.store import PersonaSlice, RecordStore

logger = get_logger("persona_service")


class PersonaService:
    """Application service for persona-scoped operations."""

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        event_log_path: Optional[Path] = None,
        today_provider: Optional[Callable[[], date]] = None,
    ):
        self.store = store or RecordStore()
        self.event_log_path = event_log_path
        self._today = today_provider or local_today
        self.mutator = LogMutator(self.store, today_provider=self._today)

    def today(self) -> date:
        return self._today()

    def _emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        append_event({"type": event_type, "payload": payload}, path=self.event_log_path)

    # ---------------------------------------------------------------------
    # Persona resolution
    # ---------------------------------------------------------------------
    def resolve_persona(self, persona_id: Optional[str] = None) -> Persona:
        """Explicit persona, else the active one."""
        if persona_id:
            return self.store.require_persona(persona_id)
        persona = self.store.active_persona()
        if persona is None:
            raise RecordNotFoundError("Persona", "<active>")
        return persona

    def slice_for(self, persona_id: Optional[str] = None) -> PersonaSlice:
        return self.store.persona_slice(self.resolve_persona(persona_id).id)

    # ---------------------------------------------------------------------
    # Personas
    # ---------------------------------------------------------------------
    def create_persona(
        self,
        name: str,
        description: str = "",
        created_at: Optional[datetime] = None,
    ) -> Persona:
        persona = self.store.add_persona(name=name, description=description, created_at=created_at)
        self._emit("persona_created", {"id": persona.id, "name": persona.name})
        return persona

    def create_from_plan(self, plan: Dict[str, Any]) -> PersonaSlice:
        """
        Persist an onboarding extraction in one go.

        plan shape:
            {"name": ..., "description": ...,
             "benchmarks": [{"title": ..., "target_date": ...,
                             "actions": [{"title": ..., "frequency": [...],
                                          "anchor_link": ..., "kickstart_version": ...}]}]}
        A single "action" mapping per benchmark is accepted as well.
        """
        persona = self.create_persona(plan["name"], plan.get("description", ""))
        for bm_data in plan.get("benchmarks", []):
            benchmark = self.add_benchmark(
                persona.id,
                title=bm_data["title"],
                target_date=bm_data.get("target_date"),
            )
            action_specs = list(bm_data.get("actions") or [])
            if bm_data.get("action"):
                action_specs.append(bm_data["action"])
            for action_data in action_specs:
                self.add_action(
                    benchmark.id,
                    title=action_data["title"],
                    frequency=action_data.get("frequency", []),
                    anchor_link=action_data.get("anchor_link", ""),
                    kickstart_version=action_data.get("kickstart_version", ""),
                )
        self.store.set_has_onboarded(True)
        return self.store.persona_slice(persona.id)

    def update_persona(self, persona_id: str, **updates: Any) -> Persona:
        persona = self.store.update_persona(persona_id, **updates)
        self._emit("persona_updated", {"id": persona_id, "updates": updates})
        return persona

    def switch_persona(self, persona_id: str) -> ScoreSnapshot:
        persona = self.store.set_active_persona(persona_id)
        self._emit("persona_activated", {"id": persona.id})
        return self.mutator.recompute(persona.id)

    def delete_persona(self, persona_id: str) -> bool:
        deleted = self.store.delete_persona(persona_id)
        if deleted:
            self._emit("persona_deleted", {"id": persona_id})
        return deleted

    # ---------------------------------------------------------------------
    # Benchmarks and actions
    # ---------------------------------------------------------------------
    def add_benchmark(
        self,
        persona_id: str,
        title: str,
        target_date: Optional[DateLike] = None,
        status: BenchmarkStatus = BenchmarkStatus.ACTIVE,
    ) -> Benchmark:
        benchmark = self.store.add_benchmark(
            persona_id,
            title=title,
            target_date=_as_instant(target_date),
            status=status,
        )
        self._emit("benchmark_created", {"id": benchmark.id, "persona_id": persona_id, "title": title})
        return benchmark

    def update_benchmark(self, benchmark_id: str, **updates: Any) -> Benchmark:
        if "target_date" in updates:
            updates["target_date"] = _as_instant(updates["target_date"])
        benchmark = self.store.update_benchmark(benchmark_id, **updates)
        self._emit("benchmark_updated", {"id": benchmark_id, "updates": updates})
        return benchmark

    def delete_benchmark(self, benchmark_id: str) -> Optional[ScoreSnapshot]:
        benchmark = self.store.get_benchmark(benchmark_id)
        if benchmark is None or not self.store.delete_benchmark(benchmark_id):
            return None
        self._emit("benchmark_deleted", {"id": benchmark_id, "persona_id": benchmark.persona_id})
        return self.mutator.recompute(benchmark.persona_id)

    def add_action(
        self,
        benchmark_id: str,
        title: str,
        frequency: Iterable[str] = (),
        anchor_link: str = "",
        kickstart_version: str = "",
    ) -> ElementalAction:
        action = self.store.add_action(
            benchmark_id,
            title=title,
            frequency=frequency,
            anchor_link=anchor_link,
            kickstart_version=kickstart_version,
        )
        self._emit("action_created", {
            "id": action.id,
            "benchmark_id": benchmark_id,
            "frequency": sorted(w.value for w in action.frequency),
        })
        self.mutator.recompute_for_action(action.id)
        return action

    def update_action(self, action_id: str, **updates: Any) -> ElementalAction:
        action = self.store.update_action(action_id, **updates)
        self._emit("action_updated", {"id": action_id, "updates": updates})
        self.mutator.recompute_for_action(action_id)
        return action

    def delete_action(self, action_id: str) -> Optional[ScoreSnapshot]:
        persona = self.store.persona_of_action(action_id)
        if not self.store.delete_action(action_id):
            return None
        self._emit("action_deleted", {"id": action_id})
        return self.mutator.recompute(persona.id) if persona else None

    # ---------------------------------------------------------------------
    # Logging
    # ---------------------------------------------------------------------
    def toggle_log(self, action_id: str, day: DateLike) -> DailyLog:
        """
        Flip completion for (action, day).

        Raises:
            FutureDateError: `day` is after today; nothing is written
        """
        log_date = to_calendar_date(day)
        if log_date > self.today():
            raise FutureDateError(log_date)
        log = self.mutator.toggle(action_id, log_date)
        self._emit("daily_log_toggled", {
            "id": log.id,
            "action_id": action_id,
            "log_date": log.log_date.isoformat(),
            "status": log.status,
        })
        return log

    def toggle_from_calendar(self, action_id: str, day: DateLike) -> DailyLog:
        """Toggle from the day-detail view; audited with source=calendar."""
        log = calendar_view.toggle_from_detail(self.mutator, action_id, day, today=self.today())
        self._emit("daily_log_toggled", {
            "id": log.id,
            "action_id": action_id,
            "log_date": log.log_date.isoformat(),
            "status": log.status,
            "source": "calendar",
        })
        return log

    # ---------------------------------------------------------------------
    # Read models
    # ---------------------------------------------------------------------
    def scores(self, persona_id: Optional[str] = None) -> ScoreSnapshot:
        data = self.slice_for(persona_id)
        return momentum_engine.score_snapshot(
            data.persona.id, data.actions, data.logs, data.persona.created_at, today=self.today()
        )

    def benchmark_progress(self, persona_id: Optional[str] = None) -> List[momentum_engine.BenchmarkProgress]:
        data = self.slice_for(persona_id)
        return momentum_engine.benchmark_progress(
            data.benchmarks, data.actions, data.logs, data.persona.created_at, today=self.today()
        )

    def today_actions(self, persona_id: Optional[str] = None, day: Optional[DateLike] = None) -> List[ElementalAction]:
        data = self.slice_for(persona_id)
        return due_actions(data.actions, to_calendar_date(day) if day is not None else self.today())

    def month_grid(self, year: int, month: int, persona_id: Optional[str] = None) -> List[calendar_view.DayInfo]:
        data = self.slice_for(persona_id)
        return calendar_view.month_grid(
            year, month, data.actions, data.logs, data.persona.created_at, today=self.today()
        )

    def day_detail(self, day: DateLike, persona_id: Optional[str] = None) -> calendar_view.DayDetail:
        data = self.slice_for(persona_id)
        return calendar_view.day_detail(day, data.actions, data.logs, data.benchmarks, today=self.today())

    def coaching_context(self, persona_id: Optional[str] = None) -> Dict[str, Any]:
        """Plain inputs for the coaching prompt assembler."""
        data = self.slice_for(persona_id)
        today = self.today()
        snapshot = momentum_engine.score_snapshot(
            data.persona.id, data.actions, data.logs, data.persona.created_at, today=today
        )
        context = momentum_engine.monthly_context(snapshot.momentum, today, data.persona.created_at)
        return {
            "persona": {"id": data.persona.id, "name": data.persona.name},
            "momentum": snapshot.momentum,
            "alignment": snapshot.alignment,
            "current_streak": calendar_view.current_streak(
                data.actions, data.logs, data.persona.created_at, today=today
            ),
            "monthly": context.to_dict(),
            "today_actions": [a.title for a in due_actions(data.actions, today)],
        }

    # ---------------------------------------------------------------------
    # Reflections
    # ---------------------------------------------------------------------
    def add_reflection(
        self,
        period_type: str,
        user_input: str,
        ai_feedback: str,
        conversation: Optional[str] = None,
        momentum_score: Optional[int] = None,
        persona_id: Optional[str] = None,
    ) -> Reflection:
        """Record a finished coaching session; the score defaults to the current momentum."""
        if momentum_score is None:
            momentum_score = self.scores(persona_id).momentum
        reflection = self.store.add_reflection(
            period_type=PeriodType(period_type),
            user_input=user_input,
            ai_feedback=ai_feedback,
            momentum_score=momentum_score,
            conversation=conversation,
        )
        self._emit("reflection_added", {
            "id": reflection.id,
            "period_type": reflection.period_type.value,
            "momentum_score": reflection.momentum_score,
        })
        return reflection

    def list_reflections(self) -> List[Reflection]:
        return self.store.list_reflections()


def _as_instant(value: Optional[DateLike]) -> Optional[datetime]:
    """Accept dates, datetimes or ISO strings for optional instants."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
