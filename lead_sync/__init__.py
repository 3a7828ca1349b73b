"""Lead reconciliation and status synchronisation for the clinic sales dashboard."""

from . import models  # noqa: F401
from .client import DashboardApiClient, EnvTokenProvider, StaticTokenProvider
from .errors import FeedTimeoutError, FetchError, LeadSyncError, PersistenceError
from .feeds import AlertsFeed, FeedIngestor, PipelineFeed, RecentActivityFeed
from .metrics import DashboardMetrics, ReportStats, compute_metrics, compute_report
from .models import (
    AppointmentStatus,
    CallAttempt,
    FeedOutcome,
    FeedState,
    FeedStatus,
    Lead,
    LeadPatch,
    LeadStatus,
    Message,
    PipelineStage,
)
from .orchestrator import RefreshHandle, SyncCoordinator
from .store import LeadStore
from .vocabulary import stage_to_status, status_to_stage

__all__ = [
    "AlertsFeed",
    "AppointmentStatus",
    "CallAttempt",
    "DashboardApiClient",
    "DashboardMetrics",
    "EnvTokenProvider",
    "FeedIngestor",
    "FeedOutcome",
    "FeedState",
    "FeedStatus",
    "FeedTimeoutError",
    "FetchError",
    "Lead",
    "LeadPatch",
    "LeadStatus",
    "LeadStore",
    "LeadSyncError",
    "Message",
    "PersistenceError",
    "PipelineFeed",
    "PipelineStage",
    "RecentActivityFeed",
    "RefreshHandle",
    "ReportStats",
    "StaticTokenProvider",
    "SyncCoordinator",
    "compute_metrics",
    "compute_report",
    "stage_to_status",
    "status_to_stage",
    "ingestion",
    "feeds",
    "orchestrator",
]
