"""Factory helpers for constructing the API client, feeds, and coordinator from configuration."""
from __future__ import annotations

import importlib
from typing import Any, Dict, Iterable, List, Optional

import requests

from .client import DashboardApiClient, EnvTokenProvider, StaticTokenProvider
from .config import ConfigurationError, api_settings, bounded_wait_seconds, iter_enabled_feed_configs
from .feeds import FEED_CLASSES, FeedIngestor
from .models import LeadPatch
from .orchestrator import SyncCoordinator
from .store import LeadStore


def _load_class(path: str):
    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ConfigurationError(f"Invalid feed class path '{path}'")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_name}' does not define '{attr}'") from exc


def build_client(config: Dict[str, Any], *, session: Optional[requests.Session] = None) -> DashboardApiClient:
    settings = api_settings(config)
    if settings.token:
        token_provider = StaticTokenProvider(settings.token)
    else:
        token_provider = EnvTokenProvider(settings.token_env)
    return DashboardApiClient(
        settings.base_url,
        token_provider=token_provider,
        timeout=settings.request_timeout,
        session=session,
    )


def build_feeds(config: Dict[str, Any], client: Any) -> List[FeedIngestor]:
    """Instantiate the feed ingestors enabled in the configuration file."""

    feeds: List[FeedIngestor] = []
    for feed_cfg in iter_enabled_feed_configs(config):
        class_path = feed_cfg.get("class")
        if class_path:
            feed_cls = _load_class(class_path)
        else:
            name = feed_cfg.get("name")
            if name not in FEED_CLASSES:
                raise ConfigurationError(
                    f"Unknown feed '{name}'. Known feeds: {sorted(FEED_CLASSES)} (or set 'class')"
                )
            feed_cls = FEED_CLASSES[name]

        options = feed_cfg.get("options", {})
        feeds.append(feed_cls(client, **options))
    return feeds


def build_coordinator(
    config: Dict[str, Any],
    *,
    client: Optional[DashboardApiClient] = None,
    store: Optional[LeadStore] = None,
    fallback: Iterable[LeadPatch] = (),
) -> SyncCoordinator:
    """Wire a store, the configured feeds, and the stage persister together.

    ``fallback`` patches are merged for any feed whose bounded wait expires.
    """

    client = client or build_client(config)
    feeds = build_feeds(config, client)
    fallback_patches = tuple(fallback)
    return SyncCoordinator(
        store if store is not None else LeadStore(),
        feeds,
        persist_stage=client.update_pipeline_stage,
        bounded_wait=bounded_wait_seconds(config),
        fallback={feed.name: fallback_patches for feed in feeds} if fallback_patches else None,
        max_workers=config.get("max_workers"),
    )
