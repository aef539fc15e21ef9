"""
Persona Momentum exception hierarchy.

- MomentumError: base class for every known failure
- ConfigError: configuration file problems
- StoreError: record store read/write failures
- RecordNotFoundError: an id that does not resolve to a live record
- FutureDateError: logging attempted on a day that has not happened yet
"""
from datetime import date
from typing import Optional


class MomentumError(Exception):
    """Base class for Persona Momentum errors.

    Catching this handles every expected failure.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        """
        Args:
            message: what went wrong
            hint: what the user can do about it
        """
        super().__init__(message)
        self.message = message
        self.hint = hint

    def get_user_message(self) -> str:
        """Return a user-facing message."""
        if self.hint:
            return f"{self.message}\nHint: {self.hint}"
        return self.message


class ConfigError(MomentumError):
    """Configuration file is missing, malformed or holds illegal values."""

    def __init__(self, message: str, config_path: Optional[str] = None):
        hint = f"Check the config file: {config_path}" if config_path else "Check the config file format"
        super().__init__(message, hint)
        self.config_path = config_path


class StoreError(MomentumError):
    """The record store could not be read or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        hint = f"Check that {path} is readable and writable" if path else None
        super().__init__(message, hint)
        self.path = path


class RecordNotFoundError(MomentumError):
    """A persona, benchmark, action or log id did not resolve."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}", hint="The record may have been deleted")
        self.kind = kind
        self.record_id = record_id


class FutureDateError(MomentumError):
    """Future dates cannot be logged."""

    def __init__(self, day: date):
        super().__init__(f"Future dates cannot be logged: {day.isoformat()}")
        self.day = day
