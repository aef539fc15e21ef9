import sys
from datetime import date, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import momentum.event_log as event_log
import momentum.logger as logger_module
import momentum.store.record_store as record_store_module
from momentum.persona_service import PersonaService
from momentum.store import RecordStore

# Sunday, 2026-10-18; the week before it runs Monday 12th .. Sunday 18th.
TODAY = date(2026, 10, 18)


@pytest.fixture
def isolated_runtime(tmp_path, monkeypatch):
    runtime_dir = tmp_path / "runtime"
    runtime_dir.mkdir()

    records_path = runtime_dir / "records.json"
    event_log_path = runtime_dir / "event_log.jsonl"
    logs_dir = runtime_dir / "logs"

    monkeypatch.setattr(record_store_module, "RECORDS_PATH", records_path)
    monkeypatch.setattr(event_log, "EVENT_LOG_PATH", event_log_path)
    monkeypatch.setattr(logger_module, "LOGS_DIR", logs_dir)
    monkeypatch.setattr(logger_module, "_configured_logs_dir", None)

    return SimpleNamespace(
        runtime_dir=runtime_dir,
        records_path=records_path,
        event_log=event_log_path,
        logs_dir=logs_dir,
    )


@pytest.fixture
def store(isolated_runtime):
    return RecordStore(path=isolated_runtime.records_path)


@pytest.fixture
def service(store, isolated_runtime):
    return PersonaService(
        store=store,
        event_log_path=isolated_runtime.event_log,
        today_provider=lambda: TODAY,
    )


@pytest.fixture
def persona(store):
    return store.add_persona("Writer", "Writes every day", created_at=datetime(2026, 10, 1, 9, 0))
