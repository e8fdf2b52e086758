# src/core/exceptions.py
"""
Error taxonomy for the persistence layer.

NULL results are not errors: aggregates coerce to 0.0 and lookups that match
nothing return zero values. Nothing here is retried by this layer.
"""


class StoreError(Exception):
    """Base class for persistence layer errors."""


class ConfigurationError(StoreError):
    """A required environment value is missing or invalid. Not recoverable."""

    def __init__(self, missing: list[str], detail: str | None = None):
        self.missing = list(missing)
        message = f"missing or invalid database configuration: {', '.join(self.missing)}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class DatabaseConnectionError(StoreError):
    """The connection pool could not be built or validated. Not recoverable."""


class QueryError(StoreError):
    """
    A stored procedure invocation failed.

    The message is the driver's error text and the driver exception is kept
    unmodified in ``orig`` (and as ``__cause__``).
    """

    def __init__(self, procedure: str, orig: BaseException):
        self.procedure = procedure
        self.orig = orig
        super().__init__(str(orig))


class ScanError(StoreError):
    """
    A returned row could not be decoded.

    ``partial`` holds every row decoded before and after the failing one, in
    store order; the cause is the last decode error seen.
    """

    def __init__(self, procedure: str, error: BaseException, partial: list | None = None):
        self.procedure = procedure
        self.partial = partial if partial is not None else []
        super().__init__(f"{procedure}: cannot decode row: {error}")
