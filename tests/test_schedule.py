from datetime import date, datetime, timedelta, timezone

import pytest

from momentum.models import ElementalAction, Weekday
from momentum.schedule import (
    date_key,
    due_actions,
    is_due,
    parse_frequency,
    parse_weekday,
    to_calendar_date,
    weekday_of,
)


def _action(action_id: str, days) -> ElementalAction:
    return ElementalAction(
        id=action_id,
        benchmark_id="bm_1",
        title=f"action-{action_id}",
        frequency=parse_frequency(days),
    )


def test_weekday_of_known_dates():
    assert weekday_of(date(1970, 1, 1)) == Weekday.THURSDAY
    assert weekday_of(date(2000, 1, 1)) == Weekday.SATURDAY
    assert weekday_of(date(2024, 2, 29)) == Weekday.THURSDAY
    assert weekday_of(date(2026, 10, 19)) == Weekday.MONDAY
    assert weekday_of(date(2026, 10, 18)) == Weekday.SUNDAY


def test_weekday_of_matches_isoweekday_over_a_year():
    day = date(2026, 1, 1)
    names = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
    for _ in range(366):
        assert weekday_of(day).value == names[day.weekday()]
        day += timedelta(days=1)


def test_to_calendar_date_truncates_time_component():
    assert to_calendar_date("2026-03-04T23:30:00Z") == date(2026, 3, 4)
    assert to_calendar_date("2026-03-04") == date(2026, 3, 4)
    assert to_calendar_date(datetime(2026, 3, 4, 23, 59)) == date(2026, 3, 4)
    assert date_key(date(2026, 3, 4)) == "2026-03-04"


def test_to_calendar_date_converts_aware_datetimes_to_local_day():
    aware = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)
    assert to_calendar_date(aware) == aware.astimezone().date()


def test_to_calendar_date_rejects_malformed_strings():
    with pytest.raises(ValueError):
        to_calendar_date("not-a-date")


def test_parse_weekday_accepts_case_and_abbreviations():
    assert parse_weekday("monday") == Weekday.MONDAY
    assert parse_weekday("WED") == Weekday.WEDNESDAY
    assert parse_weekday(Weekday.FRIDAY) == Weekday.FRIDAY
    with pytest.raises(ValueError):
        parse_weekday("Funday")


def test_is_due_follows_frequency():
    mwf = _action("a1", ["Monday", "Wednesday", "Friday"])
    assert is_due(mwf, date(2026, 10, 12)) is True   # Monday
    assert is_due(mwf, date(2026, 10, 13)) is False  # Tuesday
    assert is_due(mwf, "2026-10-14T08:00:00") is True


def test_empty_frequency_is_never_due():
    never = _action("a2", [])
    day = date(2026, 10, 12)
    for offset in range(7):
        assert is_due(never, day + timedelta(days=offset)) is False


def test_due_actions_keeps_input_order():
    a = _action("a", ["Sunday"])
    b = _action("b", ["Monday"])
    c = _action("c", ["Sunday", "Monday"])
    assert [x.id for x in due_actions([a, b, c], date(2026, 10, 18))] == ["a", "c"]
