from __future__ import annotations

from typing import Any, List, Optional

import pytest
import requests

from lead_sync.client import (
    ACTION_REQUIRED_PATH,
    DashboardApiClient,
    EnvTokenProvider,
    StaticTokenProvider,
)
from lead_sync.errors import FetchError, PersistenceError
from lead_sync.models import PipelineStage


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, content: bytes = b"{}") -> None:
        self.status_code = status_code
        self._payload = payload
        self.content = content

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None) -> None:
        self.response = response or FakeResponse()
        self.error = error
        self.requests: List[dict] = []
        self.closed = False

    def _record(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._record("GET", url, **kwargs)

    def patch(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._record("PATCH", url, **kwargs)

    def close(self) -> None:
        self.closed = True


def _client(session: FakeSession, token: Optional[str] = "secret") -> DashboardApiClient:
    return DashboardApiClient(
        "https://api.example.com/",
        token_provider=StaticTokenProvider(token),
        session=session,
    )


def test_fetch_action_required_unwraps_items() -> None:
    session = FakeSession(FakeResponse(payload={"data": {"items": [{"id": 1}, "junk"], "total": 1}}))

    rows = _client(session).fetch_action_required()

    assert rows == [{"id": 1}]
    (request,) = session.requests
    assert request["url"] == f"https://api.example.com{ACTION_REQUIRED_PATH}"
    assert request["params"] == {"page": 1, "limit": 500}
    assert request["headers"]["Authorization"] == "Bearer secret"


def test_missing_token_sends_no_authorization_header() -> None:
    session = FakeSession(FakeResponse(payload={"data": {"items": []}}))

    assert _client(session, token=None).fetch_recent_activity() == []
    assert "Authorization" not in session.requests[0]["headers"]
    assert session.requests[0]["params"] == {"page": 1, "limit": 1000}


def test_fetch_sales_pipeline_returns_data() -> None:
    buckets = [{"stage": "BOOKED", "leads": [{"id": 2}]}]
    session = FakeSession(FakeResponse(payload={"data": buckets}))

    assert _client(session).fetch_sales_pipeline() == buckets


@pytest.mark.parametrize("status_code, unauthenticated", [(401, True), (403, True), (500, False)])
def test_http_errors_raise_fetch_error(status_code: int, unauthenticated: bool) -> None:
    session = FakeSession(FakeResponse(status_code=status_code, payload={}))

    with pytest.raises(FetchError) as excinfo:
        _client(session).fetch_action_required()

    assert excinfo.value.status_code == status_code
    assert excinfo.value.unauthenticated is unauthenticated
    assert excinfo.value.feed == "alerts"


def test_network_error_raises_fetch_error() -> None:
    session = FakeSession(error=requests.ConnectionError("refused"))

    with pytest.raises(FetchError):
        _client(session).fetch_recent_activity()


def test_non_json_body_raises_fetch_error() -> None:
    session = FakeSession(FakeResponse(payload=ValueError("not json")))

    with pytest.raises(FetchError):
        _client(session).fetch_sales_pipeline()


def test_update_pipeline_stage_sends_patch() -> None:
    session = FakeSession(FakeResponse(payload={"success": True}))

    result = _client(session).update_pipeline_stage("lead/7", PipelineStage.BOOKED)

    assert result == {"success": True}
    (request,) = session.requests
    assert request["method"] == "PATCH"
    assert request["url"] == "https://api.example.com/user/sales-pipeline/lead%2F7/stage"
    assert request["json"] == {"pipeline_stage": "BOOKED"}


def test_update_pipeline_stage_failure_raises_persistence_error() -> None:
    session = FakeSession(FakeResponse(status_code=500, payload={}))

    with pytest.raises(PersistenceError) as excinfo:
        _client(session).update_pipeline_stage("7", "COMPLETED_PAID")

    assert excinfo.value.lead_id == "7"


def test_env_token_provider(monkeypatch) -> None:
    monkeypatch.setenv("CLINIC_TOKEN", "  abc ")
    assert EnvTokenProvider("CLINIC_TOKEN").get_token() == "abc"
    monkeypatch.delenv("CLINIC_TOKEN")
    assert EnvTokenProvider("CLINIC_TOKEN").get_token() is None


def test_client_requires_base_url() -> None:
    with pytest.raises(ValueError):
        DashboardApiClient("")


def test_context_manager_closes_session() -> None:
    session = FakeSession()
    with _client(session):
        pass
    assert session.closed
