"""Error taxonomy for the sync engine."""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for listing sync."""

    fatal: bool = True


class RateLimitExceeded(SyncError):
    """Hourly request budget for the feed is spent. Retry after the hour window rolls over."""


class TransientNetworkError(SyncError):
    """Timeout, transport failure, 429 or 5xx. Retried by the scheduler on its next tick."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(SyncError):
    """Upstream rejected our credentials."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecordError(SyncError):
    """A single record could not be reconciled. The batch keeps going."""

    fatal = False

    def __init__(self, message: str, *, source_ref: str | None = None) -> None:
        super().__init__(message)
        self.source_ref = source_ref


class RecordTransformError(RecordError):
    """Raw payload is malformed or carries no usable identity."""


class PersistenceError(RecordError):
    """Store rejected the upsert for one record."""
