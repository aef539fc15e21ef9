"""
Momentum Engine for Persona Momentum.

Derives completion percentages from daily logs against weekly schedules:
- compute_momentum: trailing-window score (7 days = momentum, 30 = alignment)
- benchmark_progress: the same score broken down per benchmark and action
- monthly_context: pacing summary read by the coaching prompt assembler

Every function takes the persona slice explicitly and an optional `today`
so results are deterministic under test.
"""
import calendar
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from momentum.config_manager import config
from momentum.models import ActionId, Benchmark, DailyLog, ElementalAction, PersonaId
from momentum.schedule import DateLike, is_due, local_today, to_calendar_date


class LogIndex:
    """(action_id, YYYY-MM-DD) -> DailyLog lookup over a log snapshot."""

    def __init__(self, logs: Iterable[DailyLog]):
        self._by_key: Dict[Tuple[str, str], DailyLog] = {}
        for log in logs:
            # first record wins, matching a linear find over the stored list
            self._by_key.setdefault((log.action_id, log.log_date.isoformat()), log)

    def get(self, action_id: ActionId, day: date) -> Optional[DailyLog]:
        return self._by_key.get((action_id, day.isoformat()))

    def is_completed(self, action_id: ActionId, day: date) -> bool:
        log = self.get(action_id, day)
        return bool(log is not None and log.status)


def percentage(completed: int, expected: int) -> int:
    """Rounded completion percentage; 0 when nothing was expected."""
    if expected <= 0:
        return 0
    # half-up rounding, so 12.5 -> 13 rather than banker's 12
    return int(math.floor(100 * completed / expected + 0.5))


def trackable_days(
    window_days: int,
    persona_created_at: Optional[DateLike] = None,
    today: Optional[date] = None,
) -> List[date]:
    """
    Calendar days eligible for scoring, newest first.

    The window is today-(window_days-1) .. today. Days before the persona's
    creation day and days after today are dropped.
    """
    today = today or local_today()
    cutoff = to_calendar_date(persona_created_at) if persona_created_at is not None else None

    days = []
    for offset in range(max(window_days, 0)):
        day = today - timedelta(days=offset)
        if cutoff is not None and day < cutoff:
            continue
        if day > today:
            continue
        days.append(day)
    return days


def tally(
    actions: Iterable[ElementalAction],
    log_index: LogIndex,
    days: Iterable[date],
) -> Tuple[int, int]:
    """Return (expected, completed) over the given days."""
    expected = 0
    completed = 0
    actions = list(actions)
    for day in days:
        for action in actions:
            if not is_due(action, day):
                continue
            expected += 1
            if log_index.is_completed(action.id, day):
                completed += 1
    return expected, completed


def compute_momentum(
    actions: Iterable[ElementalAction],
    logs: Iterable[DailyLog],
    persona_created_at: Optional[DateLike],
    window_days: int,
    today: Optional[date] = None,
) -> int:
    """
    Completion percentage over the trailing window.

    Args:
        actions: the persona's elemental actions
        logs: daily logs for those actions (others are ignored)
        persona_created_at: scoring cutoff; None disables it
        window_days: 7 for momentum, 30 for persona alignment
        today: override for the current local day

    Returns:
        Integer in [0, 100]; 0 when no occurrence was due.
    """
    actions = list(actions)
    if not actions:
        return 0
    days = trackable_days(window_days, persona_created_at, today)
    expected, completed = tally(actions, LogIndex(logs), days)
    return percentage(completed, expected)


def momentum_score(actions, logs, persona_created_at, today: Optional[date] = None) -> int:
    return compute_momentum(actions, logs, persona_created_at, config.MOMENTUM_WINDOW_DAYS, today)


def alignment_score(actions, logs, persona_created_at, today: Optional[date] = None) -> int:
    return compute_momentum(actions, logs, persona_created_at, config.ALIGNMENT_WINDOW_DAYS, today)


@dataclass(frozen=True)
class ScoreSnapshot:
    """Scores published after every log mutation."""
    persona_id: Optional[PersonaId]
    momentum: int
    alignment: int
    computed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, object]:
        return {
            "persona_id": self.persona_id,
            "momentum": self.momentum,
            "alignment": self.alignment,
            "computed_at": self.computed_at.isoformat(),
        }


def score_snapshot(
    persona_id: Optional[PersonaId],
    actions: Iterable[ElementalAction],
    logs: Iterable[DailyLog],
    persona_created_at: Optional[DateLike],
    today: Optional[date] = None,
) -> ScoreSnapshot:
    actions = list(actions)
    logs = list(logs)
    return ScoreSnapshot(
        persona_id=persona_id,
        momentum=momentum_score(actions, logs, persona_created_at, today),
        alignment=alignment_score(actions, logs, persona_created_at, today),
    )


# ---------------------------------------------------------------------------
# Benchmark breakdown
# ---------------------------------------------------------------------------

@dataclass
class ActionProgress:
    action: ElementalAction
    progress: int
    expected: int = 0
    completed: int = 0


@dataclass
class BenchmarkProgress:
    benchmark: Benchmark
    progress: int
    actions: List[ActionProgress] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "benchmark_id": self.benchmark.id,
            "title": self.benchmark.title,
            "status": self.benchmark.status.value,
            "progress": self.progress,
            "actions": [
                {
                    "action_id": ap.action.id,
                    "title": ap.action.title,
                    "progress": ap.progress,
                    "expected": ap.expected,
                    "completed": ap.completed,
                }
                for ap in self.actions
            ],
        }


def benchmark_progress(
    benchmarks: Iterable[Benchmark],
    actions: Iterable[ElementalAction],
    logs: Iterable[DailyLog],
    persona_created_at: Optional[DateLike],
    window_days: Optional[int] = None,
    today: Optional[date] = None,
) -> List[BenchmarkProgress]:
    """Per-benchmark and per-action percentages over the trackable window."""
    if window_days is None:
        window_days = config.BENCHMARK_PROGRESS_WINDOW_DAYS
    days = trackable_days(window_days, persona_created_at, today)
    log_index = LogIndex(logs)

    by_benchmark: Dict[str, List[ElementalAction]] = defaultdict(list)
    for action in actions:
        by_benchmark[action.benchmark_id].append(action)

    results = []
    for benchmark in benchmarks:
        total_expected = 0
        total_completed = 0
        action_rows = []
        for action in by_benchmark.get(benchmark.id, []):
            expected, completed = tally([action], log_index, days)
            total_expected += expected
            total_completed += completed
            action_rows.append(
                ActionProgress(action, percentage(completed, expected), expected, completed)
            )
        results.append(
            BenchmarkProgress(benchmark, percentage(total_completed, total_expected), action_rows)
        )
    return results


# ---------------------------------------------------------------------------
# Coaching context
# ---------------------------------------------------------------------------

def days_since(persona_created_at: DateLike, today: Optional[date] = None) -> int:
    """Whole calendar days since the persona was created (never negative)."""
    today = today or local_today()
    return max((today - to_calendar_date(persona_created_at)).days, 0)


def persona_stage(age_days: int) -> str:
    if age_days <= config.NEW_PERSONA_DAYS:
        return "new"
    if age_days <= config.ESTABLISHED_PERSONA_DAYS:
        return "building"
    return "established"


@dataclass
class MonthlyContext:
    """Where the user is in the month versus how consistent they have been."""
    day_of_month: int
    days_in_month: int
    percent_through_month: int
    completion_rate: int
    is_ahead: bool
    is_behind: bool
    days_since_persona_created: Optional[int] = None
    persona_stage: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "day_of_month": self.day_of_month,
            "days_in_month": self.days_in_month,
            "percent_through_month": self.percent_through_month,
            "completion_rate": self.completion_rate,
            "is_ahead": self.is_ahead,
            "is_behind": self.is_behind,
            "days_since_persona_created": self.days_since_persona_created,
            "persona_stage": self.persona_stage,
        }


def monthly_context(
    momentum: int,
    today: Optional[date] = None,
    persona_created_at: Optional[DateLike] = None,
) -> MonthlyContext:
    today = today or local_today()
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    percent_through = percentage(today.day, days_in_month)

    age = None
    stage = None
    if persona_created_at is not None:
        age = days_since(persona_created_at, today)
        stage = persona_stage(age)

    return MonthlyContext(
        day_of_month=today.day,
        days_in_month=days_in_month,
        percent_through_month=percent_through,
        completion_rate=momentum,
        is_ahead=momentum >= percent_through,
        is_behind=momentum < percent_through - config.MONTHLY_BEHIND_MARGIN,
        days_since_persona_created=age,
        persona_stage=stage,
    )
