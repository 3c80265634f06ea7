from __future__ import annotations


class HourglassError(Exception):
    """Base class for errors raised by the tracker core and its store."""


class InvalidInput(HourglassError, ValueError):
    pass


class InvalidPaceError(HourglassError, ValueError):
    default_message = "Cannot project with zero or negative daily hours."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class StoreUnavailableError(HourglassError):
    pass


class StoreWriteError(HourglassError):
    pass
