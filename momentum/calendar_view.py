"""
Calendar / Streak Deriver for Persona Momentum.

Read-only derivations over a persona slice for the month grid:
- per-day completed/total counts and complete/partial/missed/neutral state
- streak links between consecutive fully-completed days
- the day-detail list, whose toggle refuses future dates
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from momentum.config_manager import config
from momentum.exceptions import FutureDateError
from momentum.log_mutator import LogMutator
from momentum.models import ActionId, Benchmark, DailyLog, ElementalAction
from momentum.momentum_engine import LogIndex
from momentum.schedule import DateLike, WEEKDAYS, due_actions, local_today, parse_weekday, to_calendar_date


class DayState(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    MISSED = "missed"
    NEUTRAL = "neutral"  # future, unscheduled, or before the persona existed


@dataclass
class DayInfo:
    """One cell of the month grid."""
    date: date
    is_current_month: bool
    is_today: bool
    completed_count: int = 0
    total_count: int = 0
    has_streak: bool = False
    state: DayState = DayState.NEUTRAL

    def to_dict(self) -> Dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "is_current_month": self.is_current_month,
            "is_today": self.is_today,
            "completed_count": self.completed_count,
            "total_count": self.total_count,
            "has_streak": self.has_streak,
            "state": self.state.value,
        }


def day_counts(
    day: date,
    actions: Iterable[ElementalAction],
    log_index: LogIndex,
) -> Tuple[int, int]:
    """(completed, total) over the actions due on `day`."""
    due = due_actions(actions, day)
    completed = sum(1 for a in due if log_index.is_completed(a.id, day))
    return completed, len(due)


def is_fully_complete(completed: int, total: int) -> bool:
    return total > 0 and completed == total


def classify_day(
    day: date,
    completed: int,
    total: int,
    today: date,
    persona_created_on: Optional[date] = None,
) -> DayState:
    if is_fully_complete(completed, total):
        return DayState.COMPLETE
    if 0 < completed < total:
        return DayState.PARTIAL
    # today is still in progress, so it is never missed
    if total > 0 and completed == 0 and day < today:
        if persona_created_on is None or day >= persona_created_on:
            return DayState.MISSED
    return DayState.NEUTRAL


def _leading_padding(first_day: date, week_start: str) -> int:
    start_index = WEEKDAYS.index(parse_weekday(week_start))
    first_index = (first_day.toordinal() - 1) % 7
    return (first_index - start_index) % 7


def month_grid(
    year: int,
    month: int,
    actions: Iterable[ElementalAction],
    logs: Iterable[DailyLog],
    persona_created_at: Optional[DateLike] = None,
    today: Optional[date] = None,
) -> List[DayInfo]:
    """
    Build the fixed-size month grid.

    Cells outside the month are padding and carry no counts. Inside the
    month each day gets counts, a state, and a streak flag that is set only
    when both the day and the calendar day before it are fully complete.
    """
    today = today or local_today()
    actions = list(actions)
    log_index = LogIndex(logs)
    created_on = to_calendar_date(persona_created_at) if persona_created_at is not None else None

    first_day = date(year, month, 1)
    days_in_month = calendar.monthrange(year, month)[1]

    cells: List[DayInfo] = []
    for offset in range(_leading_padding(first_day, config.CALENDAR_WEEK_START), 0, -1):
        cells.append(DayInfo(date=first_day - timedelta(days=offset), is_current_month=False, is_today=False))

    prev_counts = day_counts(first_day - timedelta(days=1), actions, log_index)
    for day_number in range(1, days_in_month + 1):
        day = date(year, month, day_number)
        completed, total = day_counts(day, actions, log_index)
        cells.append(
            DayInfo(
                date=day,
                is_current_month=True,
                is_today=day == today,
                completed_count=completed,
                total_count=total,
                has_streak=is_fully_complete(*prev_counts) and is_fully_complete(completed, total),
                state=classify_day(day, completed, total, today, created_on),
            )
        )
        prev_counts = (completed, total)

    last_day = date(year, month, days_in_month)
    trailing = max(config.CALENDAR_GRID_CELLS - len(cells), 0)
    for offset in range(1, trailing + 1):
        cells.append(DayInfo(date=last_day + timedelta(days=offset), is_current_month=False, is_today=False))

    return cells


def current_streak(
    actions: Iterable[ElementalAction],
    logs: Iterable[DailyLog],
    persona_created_at: Optional[DateLike] = None,
    today: Optional[date] = None,
) -> int:
    """
    Consecutive fully-complete days ending today.

    If today is not complete yet the run is counted up to yesterday. A day
    with nothing due ends the run.
    """
    today = today or local_today()
    actions = list(actions)
    logs = list(logs)
    if not actions or not logs:
        return 0

    log_index = LogIndex(logs)
    earliest = min(log.log_date for log in logs)
    if persona_created_at is not None:
        earliest = max(earliest, to_calendar_date(persona_created_at))

    day = today
    if not is_fully_complete(*day_counts(day, actions, log_index)):
        day -= timedelta(days=1)

    streak = 0
    while day >= earliest and is_fully_complete(*day_counts(day, actions, log_index)):
        streak += 1
        day -= timedelta(days=1)
    return streak


# ---------------------------------------------------------------------------
# Day detail
# ---------------------------------------------------------------------------

@dataclass
class ActionStatus:
    action: ElementalAction
    benchmark: Optional[Benchmark]
    completed: bool


@dataclass
class DayDetail:
    """Due actions for a selected date and whether each one is done."""
    date: date
    is_future: bool
    items: List[ActionStatus] = field(default_factory=list)

    @property
    def completed_count(self) -> int:
        return sum(1 for item in self.items if item.completed)

    @property
    def total_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "is_future": self.is_future,
            "completed_count": self.completed_count,
            "total_count": self.total_count,
            "actions": [
                {
                    "action_id": item.action.id,
                    "title": item.action.title,
                    "benchmark_title": item.benchmark.title if item.benchmark else None,
                    "kickstart_version": item.action.kickstart_version,
                    "completed": item.completed,
                }
                for item in self.items
            ],
        }


def day_detail(
    day: DateLike,
    actions: Iterable[ElementalAction],
    logs: Iterable[DailyLog],
    benchmarks: Iterable[Benchmark] = (),
    today: Optional[date] = None,
) -> DayDetail:
    today = today or local_today()
    day = to_calendar_date(day)
    log_index = LogIndex(logs)
    benchmarks_by_id = {b.id: b for b in benchmarks}

    items = [
        ActionStatus(
            action=action,
            benchmark=benchmarks_by_id.get(action.benchmark_id),
            completed=log_index.is_completed(action.id, day),
        )
        for action in due_actions(actions, day)
    ]
    return DayDetail(date=day, is_future=day > today, items=items)


def toggle_from_detail(
    mutator: LogMutator,
    action_id: ActionId,
    day: DateLike,
    today: Optional[date] = None,
) -> DailyLog:
    """
    Toggle from the day-detail view.

    Raises:
        FutureDateError: `day` is after today; nothing is written
    """
    today = today or local_today()
    day = to_calendar_date(day)
    if day > today:
        raise FutureDateError(day)
    return mutator.toggle(action_id, day)
