"""
Configuration Manager for Persona Momentum.

Central home for tunable constants.

Usage:
    from momentum.config_manager import config
    window = config.MOMENTUM_WINDOW_DAYS
"""
from dataclasses import dataclass

import yaml

from momentum.exceptions import ConfigError
from momentum.logger import get_logger
from momentum.paths import CONFIG_DIR

RUNTIME_CONFIG_PATH = CONFIG_DIR / "runtime.yaml"

logger = get_logger("config")


@dataclass
class SystemConfig:
    """
    Runtime constants.

    Every value can be overridden from config/runtime.yaml.
    """

    # === Scoring windows ===

    # Short-term "momentum score" window (days, today inclusive)
    MOMENTUM_WINDOW_DAYS: int = 7

    # Long-term "persona alignment score" window
    ALIGNMENT_WINDOW_DAYS: int = 30

    # Window used by per-benchmark progress bars
    BENCHMARK_PROGRESS_WINDOW_DAYS: int = 30

    # === Calendar ===

    # Month grid is always 6 weeks
    CALENDAR_GRID_CELLS: int = 42

    # First column of the month grid
    CALENDAR_WEEK_START: str = "Sunday"

    # === Coaching context ===

    # Percentage points below month pace before the user counts as behind
    MONTHLY_BEHIND_MARGIN: int = 10

    # Persona age thresholds (days) for the coaching tone
    NEW_PERSONA_DAYS: int = 7
    ESTABLISHED_PERSONA_DAYS: int = 30


def _load_runtime_config() -> dict:
    """Load runtime overrides, if any."""
    if not RUNTIME_CONFIG_PATH.exists():
        return {}

    try:
        with open(RUNTIME_CONFIG_PATH, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning(f"Ignoring unreadable runtime config {RUNTIME_CONFIG_PATH}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring runtime config {RUNTIME_CONFIG_PATH}: top level must be a mapping")
        return {}
    return data


def get_config() -> SystemConfig:
    """
    Build the system config.

    Priority: runtime.yaml > defaults

    Raises:
        ConfigError: a known key holds a value of the wrong type
    """
    base = SystemConfig()
    overrides = _load_runtime_config()

    for key, value in overrides.items():
        if not hasattr(base, key):
            continue
        expected = type(getattr(base, key))
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigError(
                f"{key} must be {expected.__name__}, got {value!r}",
                config_path=str(RUNTIME_CONFIG_PATH),
            )
        setattr(base, key, value)

    return base


config = get_config()
