"""Feed ingestors for the three dashboard lead endpoints."""

from .alerts import ActionRequiredRow, AlertsFeed  # noqa: F401
from .base import DEFAULT_BOUNDED_WAIT_SECONDS, FeedIngestor  # noqa: F401
from .pipeline import PipelineFeed, PipelineRow, flatten_pipeline_payload  # noqa: F401
from .recent_activity import RecentActivityFeed, RecentActivityRow  # noqa: F401

FEED_CLASSES = {
    AlertsFeed.name: AlertsFeed,
    RecentActivityFeed.name: RecentActivityFeed,
    PipelineFeed.name: PipelineFeed,
}

__all__ = [
    "ActionRequiredRow",
    "AlertsFeed",
    "DEFAULT_BOUNDED_WAIT_SECONDS",
    "FEED_CLASSES",
    "FeedIngestor",
    "PipelineFeed",
    "PipelineRow",
    "RecentActivityFeed",
    "RecentActivityRow",
    "flatten_pipeline_payload",
]
