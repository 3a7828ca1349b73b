"""Exception hierarchy shared by the feed ingestors and the sync coordinator."""
from __future__ import annotations

from typing import Optional


class LeadSyncError(RuntimeError):
    """Base class for recoverable errors raised by the engine."""


class FetchError(LeadSyncError):
    """Raised when a feed cannot be read from the dashboard API."""

    def __init__(
        self,
        message: str,
        *,
        feed: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.feed = feed
        self.status_code = status_code

    @property
    def unauthenticated(self) -> bool:
        return self.status_code in (401, 403)


class FeedTimeoutError(LeadSyncError, TimeoutError):
    """Raised when a bounded feed load does not settle in time."""

    def __init__(self, feed: str, timeout: float) -> None:
        super().__init__(f"Feed '{feed}' did not respond within {timeout:g} seconds")
        self.feed = feed
        self.timeout = timeout


class PersistenceError(LeadSyncError):
    """Raised when a pipeline stage write is rejected or cannot be sent."""

    def __init__(self, message: str, *, lead_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.lead_id = lead_id


__all__ = ["LeadSyncError", "FetchError", "FeedTimeoutError", "PersistenceError"]
