"""
Persona Momentum logging setup.

Log layout under logs/ (or the directory passed to setup_logging):
- system.log: store writes, toggles, recomputes (INFO+)
- error.log: failures with stack traces (ERROR+)
- corruption_dump.log: records dropped while loading records.json
- console: only what the user should see (WARNING+)
"""
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGS_DIR = Path(__file__).parent.parent / "logs"

MAX_BYTES = 5 * 1024 * 1024  # 5MB
BACKUP_COUNT = 3

ROOT_LOGGER_NAME = "persona_momentum"

# set by setup_logging; log_corruption falls back to LOGS_DIR
_configured_logs_dir: Optional[Path] = None

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
CONSOLE_FORMAT = "[%(levelname)s] %(message)s"


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_level: int = logging.INFO,
    console_level: int = logging.WARNING,
    logs_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Attach file and console handlers to the persona_momentum logger.

    Args:
        log_level: system.log level (default INFO)
        console_level: stderr level (default WARNING)
        logs_dir: where to write; defaults to LOGS_DIR

    Returns:
        The configured package logger.
    """
    global _configured_logs_dir
    target = logs_dir or LOGS_DIR
    target.mkdir(parents=True, exist_ok=True)
    _configured_logs_dir = target

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    # repeated setup (uvicorn reload) must not stack handlers
    logger.handlers.clear()

    file_format = logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    logger.addHandler(_rotating_handler(target / "system.log", log_level, file_format))
    logger.addHandler(_rotating_handler(target / "error.log", logging.ERROR, file_format))

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Module logger, e.g. get_logger("store") -> persona_momentum.store."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)


def log_corruption(record_kind: str, raw_record: str, error_msg: str) -> None:
    """
    Append a rejected record to corruption_dump.log and warn.

    Args:
        record_kind: collection the record came from ("logs", "actions", ...)
        raw_record: the offending record, serialised
        error_msg: why it was rejected
    """
    target = _configured_logs_dir or LOGS_DIR
    target.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().isoformat()
    with open(target / "corruption_dump.log", "a", encoding="utf-8") as dump:
        dump.write(f"[{stamp}] {record_kind}: {error_msg}\n")
        dump.write(f"  Raw: {raw_record}\n")
        dump.write("-" * 50 + "\n")

    get_logger("store").warning(f"Dropped corrupt {record_kind} record: {error_msg}")
