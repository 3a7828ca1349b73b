"""HTTP client for the clinic dashboard API."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol
from urllib.parse import quote

import requests

from .errors import FetchError, PersistenceError
from .models import PipelineStage

LOGGER = logging.getLogger(__name__)

ACTION_REQUIRED_PATH = "/user/dashboard/overview/action-required/get-list"
RECENT_ACTIVITY_PATH = "/user/dashboard/recent-activity/list"
SALES_PIPELINE_PATH = "/user/sales-pipeline"
PIPELINE_STAGE_PATH = "/user/sales-pipeline/{lead_id}/stage"

DEFAULT_TOKEN_ENV = "DASHBOARD_API_TOKEN"


class TokenProvider(Protocol):
    """Supplies the opaque bearer token for the current session."""

    def get_token(self) -> Optional[str]:  # pragma: no cover - runtime protocol
        """Return the token, or ``None`` when the session is logged out."""


@dataclass
class StaticTokenProvider:
    token: Optional[str] = None

    def get_token(self) -> Optional[str]:
        return self.token or None

    def clear(self) -> None:
        self.token = None


@dataclass
class EnvTokenProvider:
    variable: str = DEFAULT_TOKEN_ENV

    def get_token(self) -> Optional[str]:
        value = os.environ.get(self.variable, "").strip()
        return value or None


class DashboardApiClient:
    """Thin wrapper over :class:`requests.Session` for the three feeds and the stage write."""

    def __init__(
        self,
        base_url: str,
        *,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url:
            raise ValueError("DashboardApiClient requires a base URL")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token_provider = token_provider or StaticTokenProvider()
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "DashboardApiClient":
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._token_provider.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def get_json(self, path: str, *, params: Optional[Mapping[str, Any]] = None, feed: Optional[str] = None) -> Any:
        url = self._url(path)
        LOGGER.debug("GET %s params=%s", url, params)
        try:
            response = self._session.get(url, params=params, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(f"Request to {path} failed: {exc}", feed=feed) from exc

        if response.status_code >= 400:
            raise FetchError(
                f"GET {path} returned HTTP {response.status_code}",
                feed=feed,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(f"GET {path} returned a non-JSON body", feed=feed) from exc

    # ------------------------------------------------------------------
    # Feeds
    def fetch_action_required(self, *, page: int = 1, limit: int = 500) -> List[Dict[str, Any]]:
        payload = self.get_json(ACTION_REQUIRED_PATH, params={"page": page, "limit": limit}, feed="alerts")
        return _items(payload)

    def fetch_recent_activity(self, *, page: int = 1, limit: int = 1000) -> List[Dict[str, Any]]:
        payload = self.get_json(RECENT_ACTIVITY_PATH, params={"page": page, "limit": limit}, feed="recent_activity")
        return _items(payload)

    def fetch_sales_pipeline(self) -> Any:
        payload = self.get_json(SALES_PIPELINE_PATH, feed="pipeline")
        if isinstance(payload, Mapping):
            return payload.get("data")
        return None

    # ------------------------------------------------------------------
    # Writes
    def update_pipeline_stage(self, lead_id: str, stage: PipelineStage | str) -> Any:
        """PATCH the lead's pipeline stage; raises :class:`PersistenceError` on failure."""

        stage_value = PipelineStage(stage).value
        path = PIPELINE_STAGE_PATH.format(lead_id=quote(str(lead_id), safe=""))
        url = self._url(path)
        LOGGER.debug("PATCH %s pipeline_stage=%s", url, stage_value)
        try:
            response = self._session.patch(
                url,
                json={"pipeline_stage": stage_value},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise PersistenceError(f"Stage update for lead {lead_id} failed: {exc}", lead_id=lead_id) from exc

        if response.status_code >= 400:
            raise PersistenceError(
                f"Stage update for lead {lead_id} returned HTTP {response.status_code}",
                lead_id=lead_id,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None


def _items(payload: Any) -> List[Dict[str, Any]]:
    """Extract ``data.items`` from a paginated response envelope."""

    if not isinstance(payload, Mapping):
        return []
    data = payload.get("data")
    if not isinstance(data, Mapping):
        return []
    items = data.get("items")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, Mapping)]


__all__ = [
    "DashboardApiClient",
    "EnvTokenProvider",
    "StaticTokenProvider",
    "TokenProvider",
    "ACTION_REQUIRED_PATH",
    "RECENT_ACTIVITY_PATH",
    "SALES_PIPELINE_PATH",
]
