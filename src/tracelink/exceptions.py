"""Exceptions raised at the backend boundary."""


class TracelinkError(Exception):
    """Base class for tracelink errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code or message


class SourceUnavailable(TracelinkError):
    """The backend could not establish its record feed."""


class PersistenceError(TracelinkError):
    """A write to the backend failed."""
