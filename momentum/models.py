"""
Core Data Models for Persona Momentum.
Defines the persona -> benchmark -> elemental action -> daily log hierarchy
and the reflection history.
"""
from dataclasses import dataclass, field
from datetime import datetime, date
from enum import Enum
from typing import FrozenSet, NewType, Optional

PersonaId = NewType("PersonaId", str)
BenchmarkId = NewType("BenchmarkId", str)
ActionId = NewType("ActionId", str)
LogId = NewType("LogId", str)
ReflectionId = NewType("ReflectionId", str)


class Weekday(str, Enum):
    """Closed weekday set; values are the names stored in action frequencies."""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class BenchmarkStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class PeriodType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass
class Persona:
    """Identity target. created_at is the scoring cutoff."""
    id: PersonaId
    name: str
    description: str = ""
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class Benchmark:
    """Milestone under a persona."""
    id: BenchmarkId
    persona_id: PersonaId
    title: str
    target_date: Optional[datetime] = None
    status: BenchmarkStatus = BenchmarkStatus.ACTIVE
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ElementalAction:
    """Repeatable behaviour scheduled on a set of weekdays."""
    id: ActionId
    benchmark_id: BenchmarkId
    title: str
    frequency: FrozenSet[Weekday] = frozenset()  # empty => never due
    anchor_link: str = ""         # habit-stacking cue
    kickstart_version: str = ""   # under-two-minutes variant
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class DailyLog:
    """At most one per (action_id, log_date); only the toggle writes it."""
    id: LogId
    action_id: ActionId
    log_date: date
    status: bool = True
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Reflection:
    """Coaching session summary. Append-only."""
    id: ReflectionId
    period_type: PeriodType
    user_input: str
    ai_feedback: str
    momentum_score: int
    created_at: datetime = field(default_factory=datetime.now)
    conversation: Optional[str] = None
