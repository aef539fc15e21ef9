"""
Schedule Resolver for Persona Momentum.

Maps calendar days to weekdays without any locale or timezone input and
answers whether an elemental action is due on a given day.
"""
from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from momentum.models import ElementalAction, Weekday

# Index 0 is Monday: date.fromordinal(1) (0001-01-01) falls on a Monday.
WEEKDAYS = (
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
    Weekday.SUNDAY,
)

DateLike = Union[date, datetime, str]


def to_calendar_date(value: DateLike) -> date:
    """
    Normalise a date, datetime or ISO string to a calendar day.

    Naive datetimes keep their wall-clock day, aware ones are converted to
    local time first. Strings with a time part are cut at the "T" before
    parsing, so "2026-03-04T23:30:00Z" stays the 4th.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if "T" in text:
        text = text.split("T", 1)[0]
    return date.fromisoformat(text)


def date_key(value: DateLike) -> str:
    """YYYY-MM-DD key used for log lookups."""
    return to_calendar_date(value).isoformat()


def local_today(now: Optional[datetime] = None) -> date:
    """Current local calendar day."""
    return (now or datetime.now()).date()


def weekday_of(day: DateLike) -> Weekday:
    """Weekday of a calendar day, from its proleptic Gregorian ordinal."""
    ordinal = to_calendar_date(day).toordinal()
    return WEEKDAYS[(ordinal - 1) % 7]


def parse_weekday(name: Union[str, Weekday]) -> Weekday:
    """
    Parse a stored weekday name.

    Accepts any casing and the three-letter abbreviation ("wed").
    """
    if isinstance(name, Weekday):
        return name
    text = str(name).strip().lower()
    for weekday in WEEKDAYS:
        full = weekday.value.lower()
        if text == full or text == full[:3]:
            return weekday
    raise ValueError(f"Unknown weekday: {name!r}")


def parse_frequency(names: Iterable[Union[str, Weekday]]) -> frozenset:
    return frozenset(parse_weekday(n) for n in names)


def is_due(action: ElementalAction, day: DateLike) -> bool:
    """True if the action's weekly frequency includes the day's weekday."""
    return weekday_of(day) in action.frequency


def due_actions(actions: Iterable[ElementalAction], day: DateLike) -> List[ElementalAction]:
    """Actions due on the given day, in input order."""
    weekday = weekday_of(day)
    return [a for a in actions if weekday in a.frequency]
