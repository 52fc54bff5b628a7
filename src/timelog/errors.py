"""Exceptions raised by timelog."""


class TimelogError(Exception):
    """Base exception for timelog errors."""

    pass


class ConfigError(TimelogError):
    """Raised when config.json exists but cannot be used."""

    pass


class CaptureError(TimelogError):
    """Raised when a hook payload cannot be turned into an event."""

    pass
