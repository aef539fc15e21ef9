import json
from datetime import date, datetime

import pytest

from conftest import TODAY
from momentum.exceptions import RecordNotFoundError, StoreError
from momentum.models import DailyLog, PeriodType, Weekday
from momentum.store import RecordStore

DAILY = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _write_records(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")


def _seed(store, persona):
    bm1 = store.add_benchmark(persona.id, "Finish draft")
    bm2 = store.add_benchmark(persona.id, "Find an agent")
    a1 = store.add_action(bm1.id, "Write", DAILY)
    a2 = store.add_action(bm1.id, "Edit", ["Sunday"])
    a3 = store.add_action(bm2.id, "Query", ["Monday"])
    for action in (a1, a2, a3):
        store.put_log(DailyLog(id=f"log_{action.id}", action_id=action.id, log_date=TODAY))
    return bm1, bm2, (a1, a2, a3)


def test_delete_benchmark_cascades_to_actions_and_logs(store, persona):
    bm1, bm2, (a1, a2, a3) = _seed(store, persona)

    assert store.delete_benchmark(bm1.id) is True

    assert store.get_benchmark(bm1.id) is None
    assert store.get_action(a1.id) is None
    assert store.get_action(a2.id) is None
    assert store.logs_for_action(a1.id) == []
    assert [a.id for a in store.actions_for_persona(persona.id)] == [a3.id]
    assert [log.action_id for log in store.logs_for_persona(persona.id)] == [a3.id]
    assert store.counts()["logs"] == 1


def test_delete_missing_records_returns_false(store, persona):
    assert store.delete_benchmark("bm_missing") is False
    assert store.delete_action("act_missing") is False
    assert store.delete_persona("persona_missing") is False


def test_delete_persona_cascades_and_reassigns_active(store, persona):
    _seed(store, persona)
    other = store.add_persona("Runner")
    assert store.active_persona_id == other.id
    store.set_active_persona(persona.id)

    assert store.delete_persona(persona.id) is True

    assert store.counts() == {"personas": 1, "benchmarks": 0, "actions": 0, "logs": 0, "reflections": 0}
    assert store.active_persona_id == other.id


def test_deleting_last_persona_resets_onboarding(store, persona):
    store.set_has_onboarded(True)

    store.delete_persona(persona.id)

    assert store.active_persona_id is None
    assert store.active_persona() is None
    assert store.has_onboarded is False


def test_round_trip_preserves_records(isolated_runtime, store, persona):
    bm, _, (write, edit, _) = _seed(store, persona)
    store.update_action(write.id, kickstart_version="Write one sentence")
    store.add_reflection(PeriodType.WEEKLY, "Good week", "Keep going", 80, conversation="[]")
    store.set_has_onboarded(True)

    reloaded = RecordStore(path=isolated_runtime.records_path)

    assert reloaded.to_dict() == store.to_dict()
    assert reloaded.has_onboarded is True
    assert reloaded.active_persona_id == persona.id
    assert reloaded.get_action(edit.id).frequency == frozenset({Weekday.SUNDAY})
    assert reloaded.get_action(write.id).kickstart_version == "Write one sentence"
    assert reloaded.find_log(write.id, TODAY).status is True
    assert reloaded.list_reflections()[0].momentum_score == 80


def test_frequency_is_stored_in_calendar_order(isolated_runtime, store, persona):
    bm = store.add_benchmark(persona.id, "Finish draft")
    store.add_action(bm.id, "Write", ["fri", "Monday", "WEDNESDAY"])

    data = json.loads(isolated_runtime.records_path.read_text(encoding="utf-8"))
    assert data["actions"][0]["frequency"] == ["Monday", "Wednesday", "Friday"]


def test_legacy_timestamp_log_dates_are_truncated(isolated_runtime):
    _write_records(isolated_runtime.records_path, {
        "personas": [{"id": "persona_1", "name": "Writer", "created_at": "2026-10-01T09:00:00"}],
        "benchmarks": [{"id": "bm_1", "persona_id": "persona_1", "title": "Draft"}],
        "actions": [{"id": "act_1", "benchmark_id": "bm_1", "title": "Write", "frequency": DAILY}],
        "logs": [{"id": "log_1", "action_id": "act_1", "log_date": "2026-10-15T23:30:00.000Z", "status": True}],
    })

    store = RecordStore(path=isolated_runtime.records_path)

    log = store.find_log("act_1", date(2026, 10, 15))
    assert log is not None
    assert log.id == "log_1"
    assert store.active_persona_id == "persona_1"


def test_load_drops_duplicates_and_orphans(isolated_runtime):
    _write_records(isolated_runtime.records_path, {
        "active_persona_id": "persona_gone",
        "personas": [
            {"id": "persona_1", "name": "Writer"},
            {"id": "persona_1", "name": "Writer again"},
            {"id": "persona_2", "name": "Writer"},
            {"id": "persona_3", "name": "Runner"},
        ],
        "benchmarks": [
            {"id": "bm_1", "persona_id": "persona_1", "title": "Draft"},
            {"id": "bm_orphan", "persona_id": "persona_2", "title": "Lost"},
        ],
        "actions": [
            {"id": "act_1", "benchmark_id": "bm_1", "title": "Write", "frequency": DAILY},
            {"id": "act_orphan", "benchmark_id": "bm_orphan", "title": "Lost"},
        ],
        "logs": [
            {"id": "log_1", "action_id": "act_1", "log_date": "2026-10-15", "status": True},
            {"id": "log_dup", "action_id": "act_1", "log_date": "2026-10-15", "status": False},
            {"id": "log_orphan", "action_id": "act_orphan", "log_date": "2026-10-15", "status": True},
        ],
    })

    store = RecordStore(path=isolated_runtime.records_path)

    assert [p.id for p in store.list_personas()] == ["persona_1", "persona_3"]
    assert store.counts()["benchmarks"] == 1
    assert store.counts()["actions"] == 1
    assert [log.id for log in store.logs_for_action("act_1")] == ["log_1"]
    assert store.active_persona_id == "persona_1"


def test_malformed_records_are_dumped_and_skipped(isolated_runtime):
    _write_records(isolated_runtime.records_path, {
        "personas": [{"id": "persona_1", "name": "Writer"}],
        "benchmarks": [{"id": "bm_1", "persona_id": "persona_1", "title": "Draft"}],
        "actions": [
            {"id": "act_1", "benchmark_id": "bm_1", "title": "Write", "frequency": ["Someday"]},
            {"id": "act_2", "benchmark_id": "bm_1", "title": "Edit", "frequency": ["Monday"]},
        ],
        "logs": [{"id": "log_1", "action_id": "act_2", "log_date": "2026-10-12", "status": "yes"}],
    })

    store = RecordStore(path=isolated_runtime.records_path)

    assert store.get_action("act_1") is None
    assert store.get_action("act_2") is not None
    assert store.counts()["logs"] == 0
    dump = (isolated_runtime.logs_dir / "corruption_dump.log").read_text(encoding="utf-8")
    assert "actions" in dump
    assert "status must be a boolean" in dump


def test_unparseable_file_starts_empty(isolated_runtime):
    isolated_runtime.records_path.write_text("{not json", encoding="utf-8")

    store = RecordStore(path=isolated_runtime.records_path)

    assert store.list_personas() == []
    assert (isolated_runtime.logs_dir / "corruption_dump.log").exists()


def test_update_rejects_unknown_fields(store, persona):
    bm = store.add_benchmark(persona.id, "Draft")
    with pytest.raises(ValueError):
        store.update_persona(persona.id, created_at=datetime(2020, 1, 1))
    with pytest.raises(ValueError):
        store.update_benchmark(bm.id, persona_id="persona_other")

    updated = store.update_benchmark(bm.id, status="completed")
    assert updated.status.value == "completed"


def test_require_raises_not_found(store):
    with pytest.raises(RecordNotFoundError):
        store.require_persona("persona_missing")
    with pytest.raises(RecordNotFoundError):
        store.add_benchmark("persona_missing", "Draft")
    with pytest.raises(RecordNotFoundError):
        store.add_action("bm_missing", "Write", DAILY)


def test_put_log_rejects_second_record_for_same_day(store, persona):
    bm = store.add_benchmark(persona.id, "Draft")
    action = store.add_action(bm.id, "Write", DAILY)
    store.put_log(DailyLog(id="log_a", action_id=action.id, log_date=TODAY))

    with pytest.raises(ValueError):
        store.put_log(DailyLog(id="log_b", action_id=action.id, log_date=TODAY))
    assert [log.id for log in store.logs_for_action(action.id)] == ["log_a"]


@pytest.mark.parametrize("score", [-1, 101, 50.5, True])
def test_reflection_score_must_be_int_in_range(store, score):
    with pytest.raises(ValueError):
        store.add_reflection(PeriodType.WEEKLY, "in", "out", score)
    assert store.list_reflections() == []


def test_persona_names_are_unique(isolated_runtime, store, persona):
    with pytest.raises(ValueError):
        store.add_persona("Writer")
    runner = store.add_persona("Runner")
    with pytest.raises(ValueError):
        store.update_persona(runner.id, name="Writer")
    assert store.update_persona(persona.id, name="Writer").name == "Writer"

    bm = store.add_benchmark(runner.id, "10k")
    store.add_action(bm.id, "Run", DAILY)
    reloaded = RecordStore(path=isolated_runtime.records_path)

    assert [p.id for p in reloaded.list_personas()] == [persona.id, runner.id]
    assert [a.title for a in reloaded.actions_for_persona(runner.id)] == ["Run"]


def test_failed_save_restores_previous_log(store, persona, monkeypatch):
    bm = store.add_benchmark(persona.id, "Draft")
    action = store.add_action(bm.id, "Write", DAILY)
    original = store.put_log(DailyLog(id="log_a", action_id=action.id, log_date=TODAY))

    def _failing_save():
        raise StoreError("disk full")

    monkeypatch.setattr(store, "save", _failing_save)

    with pytest.raises(StoreError):
        store.put_log(DailyLog(id="log_a", action_id=action.id, log_date=TODAY, status=False))
    assert store.find_log(action.id, TODAY) is original

    with pytest.raises(StoreError):
        store.put_log(DailyLog(id="log_b", action_id=action.id, log_date=date(2026, 10, 17)))
    assert store.find_log(action.id, date(2026, 10, 17)) is None
    assert [log.id for log in store.logs_for_action(action.id)] == ["log_a"]
