"""Exception hierarchy for channel recording sessions."""

from __future__ import annotations

from typing import Any, Optional


class RecorderError(Exception):
    """Base exception for all channel-recorder errors."""

    pass


class ConfigurationError(RecorderError, ValueError):
    """Raised when a session configuration is missing or invalid.

    Always raised before any filesystem or engine call is made.
    """

    def __init__(self, message: str, validation_errors: Optional[list] = None):
        self.validation_errors = validation_errors or []
        super().__init__(message)


class SessionCreationError(RecorderError):
    """Raised when the record directory or ``cfg.json`` cannot be written."""

    def __init__(self, message: str, path: Optional[Any] = None):
        self.path = path
        super().__init__(message)


class JoinError(RecorderError):
    """The native engine reported a join failure.

    ``err`` and ``stat_code`` are the engine's codes, passed through verbatim.
    """

    def __init__(self, err: Any, stat_code: Any = None, message: Optional[str] = None):
        self.err = err
        self.stat_code = stat_code
        super().__init__(message or f"join failed (err={err}, stat_code={stat_code})")

    @property
    def codes(self) -> tuple:
        return (self.err, self.stat_code)


class JoinTimeout(RecorderError, TimeoutError):
    """The join deadline elapsed before the engine answered."""

    def __init__(self, channel: str, timeout: float):
        self.channel = channel
        self.timeout = timeout
        super().__init__(f"joining channel '{channel}' timed out after {timeout:g}s")


class InvalidStateError(RecorderError, RuntimeError):
    """A control call was issued outside its valid lifecycle window."""

    pass


__all__ = [
    "RecorderError",
    "ConfigurationError",
    "SessionCreationError",
    "JoinError",
    "JoinTimeout",
    "InvalidStateError",
]
