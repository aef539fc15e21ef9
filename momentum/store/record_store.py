"""
RecordStore: typed in-memory arena of personas, benchmarks, actions, logs
and reflections with JSON persistence.

Path: data/records.json. Ownership is kept in explicit indexes
(persona -> benchmarks -> actions -> logs by date) so cascades and owner
lookups never scan whole collections.
"""
import json
import os
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from momentum.exceptions import RecordNotFoundError, StoreError
from momentum.logger import get_logger, log_corruption
from momentum.models import (
    ActionId,
    Benchmark,
    BenchmarkId,
    BenchmarkStatus,
    DailyLog,
    ElementalAction,
    PeriodType,
    Persona,
    PersonaId,
    Reflection,
    ReflectionId,
)
from momentum.paths import RECORDS_PATH
from momentum.schedule import DateLike, parse_frequency, to_calendar_date
from momentum.store import serialization as ser

logger = get_logger("store")

STORE_VERSION = "1.0"

PERSONA_FIELDS = {"name", "description"}
BENCHMARK_FIELDS = {"title", "target_date", "status"}
ACTION_FIELDS = {"title", "frequency", "anchor_link", "kickstart_version"}


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


@dataclass
class PersonaSlice:
    """Everything owned by one persona, as plain lists."""
    persona: Persona
    benchmarks: List[Benchmark] = field(default_factory=list)
    actions: List[ElementalAction] = field(default_factory=list)
    logs: List[DailyLog] = field(default_factory=list)


class RecordStore:
    """In-memory record arena with JSON persistence at RECORDS_PATH."""

    def __init__(self, path: Optional[Path] = None):
        self._path = path if path is not None else RECORDS_PATH
        self._reset()
        self._load()

    def _reset(self) -> None:
        self._personas: Dict[str, Persona] = {}
        self._benchmarks: Dict[str, Benchmark] = {}
        self._actions: Dict[str, ElementalAction] = {}
        self._logs: Dict[str, DailyLog] = {}
        self._reflections: List[Reflection] = []

        self._benchmarks_by_persona: Dict[str, List[str]] = {}
        self._actions_by_benchmark: Dict[str, List[str]] = {}
        # action id -> {YYYY-MM-DD: log id}
        self._logs_by_action: Dict[str, Dict[str, str]] = {}

        self._active_persona_id: Optional[str] = None
        self._has_onboarded = False

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            log_corruption("records", str(self._path), f"unparseable store file: {e}")
            return
        except OSError as e:
            raise StoreError(f"Failed to read record store: {e}", str(self._path)) from e

        if not isinstance(data, dict):
            log_corruption("records", str(self._path), "top level is not an object")
            return

        seen_names = set()
        for raw in self._decode_all(data, "personas", ser.dict_to_persona):
            # keep the first persona per id and per name
            if raw.id in self._personas or raw.name in seen_names:
                logger.info(f"Dropping duplicate persona {raw.id} ({raw.name})")
                continue
            seen_names.add(raw.name)
            self._index_persona(raw)

        for bm in self._decode_all(data, "benchmarks", ser.dict_to_benchmark):
            if bm.persona_id not in self._personas:
                logger.warning(f"Dropping orphan benchmark {bm.id}")
                continue
            self._index_benchmark(bm)

        for action in self._decode_all(data, "actions", ser.dict_to_action):
            if action.benchmark_id not in self._benchmarks:
                logger.warning(f"Dropping orphan action {action.id}")
                continue
            self._index_action(action)

        for log in self._decode_all(data, "logs", ser.dict_to_log):
            if log.action_id not in self._actions:
                logger.warning(f"Dropping orphan log {log.id}")
                continue
            if log.log_date.isoformat() in self._logs_by_action[log.action_id]:
                logger.warning(f"Dropping duplicate log {log.id} for {log.action_id} on {log.log_date}")
                continue
            self._index_log(log)

        self._reflections = self._decode_all(data, "reflections", ser.dict_to_reflection)

        active_id = data.get("active_persona_id")
        if active_id in self._personas:
            self._active_persona_id = active_id
        elif self._personas:
            self._active_persona_id = next(iter(self._personas))
        self._has_onboarded = bool(data.get("has_onboarded", False))

    @staticmethod
    def _decode_all(data: dict, key: str, decode: Callable[[dict], Any]) -> list:
        records = []
        raw_items = data.get(key) or []
        if not isinstance(raw_items, list):
            log_corruption(key, repr(raw_items)[:200], "collection is not a list")
            return records
        for raw in raw_items:
            try:
                records.append(decode(raw))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                log_corruption(key, json.dumps(raw, ensure_ascii=False, default=str)[:500], str(e))
        return records

    def to_dict(self) -> dict:
        return {
            "version": STORE_VERSION,
            "active_persona_id": self._active_persona_id,
            "has_onboarded": self._has_onboarded,
            "personas": [ser.persona_to_dict(p) for p in self._personas.values()],
            "benchmarks": [ser.benchmark_to_dict(b) for b in self._benchmarks.values()],
            "actions": [ser.action_to_dict(a) for a in self._actions.values()],
            "logs": [ser.log_to_dict(log) for log in self._logs.values()],
            "reflections": [ser.reflection_to_dict(r) for r in self._reflections],
        }

    def save(self) -> None:
        """Write the whole store; readers never see a half-written file."""
        payload = self.to_dict()
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StoreError(f"Failed to write record store: {e}", str(self._path)) from e

    # ------------------------------------------------------------------
    # Index maintenance
    # ------------------------------------------------------------------
    def _index_persona(self, persona: Persona) -> None:
        self._personas[persona.id] = persona
        self._benchmarks_by_persona.setdefault(persona.id, [])

    def _index_benchmark(self, benchmark: Benchmark) -> None:
        self._benchmarks[benchmark.id] = benchmark
        self._benchmarks_by_persona.setdefault(benchmark.persona_id, []).append(benchmark.id)
        self._actions_by_benchmark.setdefault(benchmark.id, [])

    def _index_action(self, action: ElementalAction) -> None:
        self._actions[action.id] = action
        self._actions_by_benchmark.setdefault(action.benchmark_id, []).append(action.id)
        self._logs_by_action.setdefault(action.id, {})

    def _index_log(self, log: DailyLog) -> None:
        self._logs[log.id] = log
        self._logs_by_action.setdefault(log.action_id, {})[log.log_date.isoformat()] = log.id

    def _unindex_log(self, log: DailyLog) -> None:
        self._logs.pop(log.id, None)
        by_date = self._logs_by_action.get(log.action_id, {})
        if by_date.get(log.log_date.isoformat()) == log.id:
            del by_date[log.log_date.isoformat()]

    def _drop_action(self, action_id: str) -> int:
        """Remove an action and its logs from the arena; returns logs removed."""
        action = self._actions.pop(action_id, None)
        if action is None:
            return 0
        siblings = self._actions_by_benchmark.get(action.benchmark_id, [])
        if action_id in siblings:
            siblings.remove(action_id)
        log_ids = self._logs_by_action.pop(action_id, {}).values()
        for log_id in log_ids:
            self._logs.pop(log_id, None)
        return len(log_ids)

    def _drop_benchmark(self, benchmark_id: str) -> int:
        """Remove a benchmark and everything under it; returns actions removed."""
        benchmark = self._benchmarks.pop(benchmark_id, None)
        if benchmark is None:
            return 0
        siblings = self._benchmarks_by_persona.get(benchmark.persona_id, [])
        if benchmark_id in siblings:
            siblings.remove(benchmark_id)
        action_ids = list(self._actions_by_benchmark.pop(benchmark_id, []))
        for action_id in action_ids:
            self._drop_action(action_id)
        return len(action_ids)

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------
    @property
    def has_onboarded(self) -> bool:
        return self._has_onboarded

    def set_has_onboarded(self, value: bool) -> None:
        self._has_onboarded = bool(value)
        self.save()

    @property
    def active_persona_id(self) -> Optional[PersonaId]:
        return self._active_persona_id

    def set_active_persona(self, persona_id: PersonaId) -> Persona:
        persona = self.require_persona(persona_id)
        self._active_persona_id = persona.id
        self.save()
        return persona

    def active_persona(self) -> Optional[Persona]:
        if self._active_persona_id is None:
            return None
        return self._personas.get(self._active_persona_id)

    # ------------------------------------------------------------------
    # Personas
    # ------------------------------------------------------------------
    def add_persona(
        self,
        name: str,
        description: str = "",
        created_at: Optional[datetime] = None,
    ) -> Persona:
        """
        Create a persona and make it the active one.

        Raises:
            ValueError: another persona already uses `name`
        """
        self._check_name_free(name)
        persona = Persona(
            id=PersonaId(new_id("persona")),
            name=name,
            description=description,
            created_at=created_at or datetime.now(),
        )
        self._index_persona(persona)
        self._active_persona_id = persona.id
        self.save()
        return persona

    def _check_name_free(self, name: str, exclude_id: Optional[str] = None) -> None:
        # names are unique: the loader keeps only the first persona per name
        for other in self._personas.values():
            if other.name == name and other.id != exclude_id:
                raise ValueError(f"A persona named {name!r} already exists: {other.id}")

    def get_persona(self, persona_id: str) -> Optional[Persona]:
        return self._personas.get(persona_id)

    def require_persona(self, persona_id: str) -> Persona:
        persona = self._personas.get(persona_id)
        if persona is None:
            raise RecordNotFoundError("Persona", persona_id)
        return persona

    def list_personas(self) -> List[Persona]:
        return list(self._personas.values())

    def update_persona(self, persona_id: str, **updates: Any) -> Persona:
        persona = self.require_persona(persona_id)
        self._check_fields("Persona", updates, PERSONA_FIELDS)
        if "name" in updates:
            self._check_name_free(updates["name"], exclude_id=persona_id)
        updated = replace(persona, **updates)
        self._personas[persona_id] = updated
        self.save()
        return updated

    def delete_persona(self, persona_id: str) -> bool:
        """
        Delete a persona with its benchmarks, actions and logs.

        The first remaining persona becomes active; deleting the last one
        also resets the onboarding flag.
        """
        if persona_id not in self._personas:
            return False
        for benchmark_id in list(self._benchmarks_by_persona.get(persona_id, [])):
            self._drop_benchmark(benchmark_id)
        self._benchmarks_by_persona.pop(persona_id, None)
        del self._personas[persona_id]

        if not self._personas:
            self._active_persona_id = None
            self._has_onboarded = False
        elif self._active_persona_id == persona_id:
            self._active_persona_id = next(iter(self._personas))
        self.save()
        return True

    # ------------------------------------------------------------------
    # Benchmarks
    # ------------------------------------------------------------------
    def add_benchmark(
        self,
        persona_id: str,
        title: str,
        target_date: Optional[datetime] = None,
        status: BenchmarkStatus = BenchmarkStatus.ACTIVE,
    ) -> Benchmark:
        self.require_persona(persona_id)
        benchmark = Benchmark(
            id=BenchmarkId(new_id("bm")),
            persona_id=PersonaId(persona_id),
            title=title,
            target_date=target_date,
            status=BenchmarkStatus(status),
        )
        self._index_benchmark(benchmark)
        self.save()
        return benchmark

    def get_benchmark(self, benchmark_id: str) -> Optional[Benchmark]:
        return self._benchmarks.get(benchmark_id)

    def require_benchmark(self, benchmark_id: str) -> Benchmark:
        benchmark = self._benchmarks.get(benchmark_id)
        if benchmark is None:
            raise RecordNotFoundError("Benchmark", benchmark_id)
        return benchmark

    def benchmarks_for(self, persona_id: str) -> List[Benchmark]:
        return [self._benchmarks[b] for b in self._benchmarks_by_persona.get(persona_id, [])]

    def update_benchmark(self, benchmark_id: str, **updates: Any) -> Benchmark:
        benchmark = self.require_benchmark(benchmark_id)
        self._check_fields("Benchmark", updates, BENCHMARK_FIELDS)
        if "status" in updates:
            updates["status"] = BenchmarkStatus(updates["status"])
        updated = replace(benchmark, **updates)
        self._benchmarks[benchmark_id] = updated
        self.save()
        return updated

    def delete_benchmark(self, benchmark_id: str) -> bool:
        """Delete a benchmark with its actions and their logs."""
        if benchmark_id not in self._benchmarks:
            return False
        removed = self._drop_benchmark(benchmark_id)
        logger.info(f"Deleted benchmark {benchmark_id} and {removed} action(s)")
        self.save()
        return True

    # ------------------------------------------------------------------
    # Elemental actions
    # ------------------------------------------------------------------
    def add_action(
        self,
        benchmark_id: str,
        title: str,
        frequency: Iterable[str] = (),
        anchor_link: str = "",
        kickstart_version: str = "",
    ) -> ElementalAction:
        self.require_benchmark(benchmark_id)
        action = ElementalAction(
            id=ActionId(new_id("act")),
            benchmark_id=BenchmarkId(benchmark_id),
            title=title,
            frequency=parse_frequency(frequency),
            anchor_link=anchor_link,
            kickstart_version=kickstart_version,
        )
        self._index_action(action)
        self.save()
        return action

    def get_action(self, action_id: str) -> Optional[ElementalAction]:
        return self._actions.get(action_id)

    def require_action(self, action_id: str) -> ElementalAction:
        action = self._actions.get(action_id)
        if action is None:
            raise RecordNotFoundError("ElementalAction", action_id)
        return action

    def actions_for_benchmark(self, benchmark_id: str) -> List[ElementalAction]:
        return [self._actions[a] for a in self._actions_by_benchmark.get(benchmark_id, [])]

    def actions_for_persona(self, persona_id: str) -> List[ElementalAction]:
        actions = []
        for benchmark_id in self._benchmarks_by_persona.get(persona_id, []):
            actions.extend(self.actions_for_benchmark(benchmark_id))
        return actions

    def persona_of_action(self, action_id: str) -> Optional[Persona]:
        action = self._actions.get(action_id)
        if action is None:
            return None
        benchmark = self._benchmarks.get(action.benchmark_id)
        if benchmark is None:
            return None
        return self._personas.get(benchmark.persona_id)

    def update_action(self, action_id: str, **updates: Any) -> ElementalAction:
        action = self.require_action(action_id)
        self._check_fields("ElementalAction", updates, ACTION_FIELDS)
        if "frequency" in updates:
            updates["frequency"] = parse_frequency(updates["frequency"])
        updated = replace(action, **updates)
        self._actions[action_id] = updated
        self.save()
        return updated

    def delete_action(self, action_id: str) -> bool:
        """Delete an action and its logs."""
        if action_id not in self._actions:
            return False
        self._drop_action(action_id)
        self.save()
        return True

    # ------------------------------------------------------------------
    # Daily logs
    # ------------------------------------------------------------------
    def find_log(self, action_id: str, day: DateLike) -> Optional[DailyLog]:
        """The live log for (action, calendar day), if any."""
        key = to_calendar_date(day).isoformat()
        log_id = self._logs_by_action.get(action_id, {}).get(key)
        return self._logs.get(log_id) if log_id else None

    def put_log(self, log: DailyLog) -> DailyLog:
        """
        Insert or replace a log.

        A different record already held for the same (action, day) is an
        invariant violation and raises ValueError. If the save fails the
        previous record is restored before StoreError propagates.
        """
        self.require_action(log.action_id)
        existing = self.find_log(log.action_id, log.log_date)
        if existing is not None and existing.id != log.id:
            raise ValueError(
                f"Log already exists for {log.action_id} on {log.log_date.isoformat()}: {existing.id}"
            )
        self._index_log(log)
        try:
            self.save()
        except StoreError:
            if existing is not None:
                self._index_log(existing)
            else:
                self._unindex_log(log)
            raise
        return log

    def logs_for_action(self, action_id: str) -> List[DailyLog]:
        by_date = self._logs_by_action.get(action_id, {})
        return [self._logs[log_id] for _, log_id in sorted(by_date.items())]

    def logs_for_persona(self, persona_id: str) -> List[DailyLog]:
        logs = []
        for action in self.actions_for_persona(persona_id):
            logs.extend(self.logs_for_action(action.id))
        return logs

    def persona_slice(self, persona_id: str) -> PersonaSlice:
        persona = self.require_persona(persona_id)
        return PersonaSlice(
            persona=persona,
            benchmarks=self.benchmarks_for(persona_id),
            actions=self.actions_for_persona(persona_id),
            logs=self.logs_for_persona(persona_id),
        )

    # ------------------------------------------------------------------
    # Reflections (append-only)
    # ------------------------------------------------------------------
    def add_reflection(
        self,
        period_type: PeriodType,
        user_input: str,
        ai_feedback: str,
        momentum_score: int,
        conversation: Optional[str] = None,
    ) -> Reflection:
        if isinstance(momentum_score, bool) or not isinstance(momentum_score, int):
            raise ValueError(f"momentum_score must be an integer, got {momentum_score!r}")
        if not 0 <= momentum_score <= 100:
            raise ValueError(f"momentum_score must be within 0..100, got {momentum_score}")
        reflection = Reflection(
            id=ReflectionId(new_id("refl")),
            period_type=PeriodType(period_type),
            user_input=user_input,
            ai_feedback=ai_feedback,
            momentum_score=momentum_score,
            conversation=conversation,
        )
        self._reflections.append(reflection)
        self.save()
        return reflection

    def list_reflections(self) -> List[Reflection]:
        return list(self._reflections)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------
    def clear_all(self) -> None:
        self._reset()
        self.save()

    def counts(self) -> Dict[str, int]:
        return {
            "personas": len(self._personas),
            "benchmarks": len(self._benchmarks),
            "actions": len(self._actions),
            "logs": len(self._logs),
            "reflections": len(self._reflections),
        }

    @staticmethod
    def _check_fields(kind: str, updates: Dict[str, Any], allowed: set) -> None:
        unknown = set(updates) - allowed
        if unknown:
            raise ValueError(f"{kind} fields cannot be updated: {', '.join(sorted(unknown))}")
