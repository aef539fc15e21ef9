"""
Audit event log for Persona Momentum.

Every mutation made through PersonaService is appended to
data/event_log.jsonl as one JSON line:
- normalize_event: fill in timestamp / schema_version / event_id
- append_event: write a normalized event
- load_events: read events back, newest window only
State is never rebuilt from this log; the record store is authoritative.
"""
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from momentum.logger import get_logger
from momentum.paths import EVENT_LOG_PATH

logger = get_logger("event_log")

EVENT_SCHEMA_VERSION = "1.0"
REQUIRED_EVENT_FIELDS = ("type", "timestamp", "schema_version", "event_id")


def validate_event_shape(event: Dict[str, Any], strict: bool = False) -> Dict[str, Any]:
    """
    Validate event shape and return validation details.

    Args:
        event: Event dictionary
        strict: If True, all required fields are mandatory.
            If False, only `type` and `timestamp` are.
    """
    missing = []
    required = REQUIRED_EVENT_FIELDS if strict else ("type", "timestamp")
    for field_name in required:
        if not event.get(field_name):
            missing.append(field_name)
    return {"valid": not missing, "missing": missing}


def normalize_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize an event to the canonical shape.
    """
    normalized = dict(event)
    normalized.setdefault("timestamp", datetime.now().isoformat())
    normalized.setdefault("schema_version", EVENT_SCHEMA_VERSION)
    normalized.setdefault("event_id", f"evt_{uuid4().hex[:12]}")
    normalized.setdefault("payload", {})
    return normalized


def append_event(event: Dict[str, Any], path: Optional[Path] = None) -> Dict[str, Any]:
    """Append an event to the log and return what was written."""
    log_path = path or EVENT_LOG_PATH
    normalized_event = normalize_event(event)
    shape = validate_event_shape(normalized_event, strict=True)
    if not shape["valid"]:
        raise ValueError(f"Event is missing required fields: {', '.join(shape['missing'])}")

    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(json.dumps(normalized_event, ensure_ascii=False, default=str) + "\n")
    return normalized_event


def load_events(days_back: Optional[int] = None, path: Optional[Path] = None) -> List[Dict[str, Any]]:
    """
    Load events from the log.

    Args:
        days_back: only keep events from the last N days (None keeps all)

    Returns:
        List of event dictionaries, oldest first.
    """
    log_path = path or EVENT_LOG_PATH
    if not log_path.exists():
        return []

    cutoff = datetime.now() - timedelta(days=days_back) if days_back is not None else None
    events = []

    with open(log_path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                logger.warning(f"Skipping unreadable event at line {line_number}")
                continue
            if cutoff is not None:
                try:
                    event_time = datetime.fromisoformat(str(event.get("timestamp", "")).replace("Z", "+00:00"))
                except ValueError:
                    events.append(event)  # unparseable time: keep it
                    continue
                if event_time.replace(tzinfo=None) < cutoff:
                    continue
            events.append(event)

    return events
