"""Coordination of feed refreshes and optimistic status writes."""

from .service import RefreshHandle, SyncCoordinator

__all__ = ["RefreshHandle", "SyncCoordinator"]
