"""Configuration helpers for the lead sync engine."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

from .client import DEFAULT_TOKEN_ENV
from .feeds import DEFAULT_BOUNDED_WAIT_SECONDS, FEED_CLASSES

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


@dataclass(frozen=True)
class ApiSettings:
    base_url: str
    token: Optional[str] = None
    token_env: str = DEFAULT_TOKEN_ENV
    request_timeout: float = 30.0


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    try:
        if file_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not parse configuration file '{file_path}': {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping")
    return data


def api_settings(config: Dict[str, Any]) -> ApiSettings:
    api = config.get("api") or {}
    base_url = api.get("base_url")
    if not base_url:
        raise ConfigurationError("Configuration missing required 'api.base_url' field")
    return ApiSettings(
        base_url=str(base_url),
        token=api.get("token"),
        token_env=api.get("token_env", DEFAULT_TOKEN_ENV),
        request_timeout=float(api.get("request_timeout", 30.0)),
    )


def bounded_wait_seconds(config: Dict[str, Any]) -> Optional[float]:
    """Return the per-feed wait budget; ``null`` in the file disables it."""

    if "bounded_wait_seconds" not in config:
        return DEFAULT_BOUNDED_WAIT_SECONDS
    value = config["bounded_wait_seconds"]
    return None if value is None else float(value)


def iter_enabled_feed_configs(config: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    feeds = config.get("feeds")
    if feeds is None:
        feeds = [{"name": name} for name in FEED_CLASSES]
    for feed in feeds:
        if feed.get("enabled", True):
            yield feed
        else:
            LOGGER.debug("Skipping disabled feed %s", feed.get("name"))
