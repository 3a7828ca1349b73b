from __future__ import annotations

import json

import pytest

from lead_sync.client import DashboardApiClient, EnvTokenProvider, StaticTokenProvider
from lead_sync.config import (
    ConfigurationError,
    api_settings,
    bounded_wait_seconds,
    iter_enabled_feed_configs,
    load_configuration,
)
from lead_sync.factory import build_client, build_coordinator, build_feeds
from lead_sync.feeds import AlertsFeed, PipelineFeed, RecentActivityFeed
from lead_sync.models import LeadPatch
from lead_sync.store import LeadStore


class StubClient:
    def __init__(self) -> None:
        self.updates = []

    def fetch_action_required(self, *, page, limit):
        return [{"id": 1, "lead_name": "Ada"}]

    def update_pipeline_stage(self, lead_id, stage):
        self.updates.append((lead_id, stage))


def test_load_yaml_configuration(tmp_path) -> None:
    path = tmp_path / "sync.yaml"
    path.write_text("api:\n  base_url: https://api.example.com\nbounded_wait_seconds: 2\n", encoding="utf-8")

    config = load_configuration(path)

    assert config["api"]["base_url"] == "https://api.example.com"
    assert bounded_wait_seconds(config) == 2.0


def test_load_json_configuration(tmp_path) -> None:
    path = tmp_path / "sync.json"
    path.write_text(json.dumps({"api": {"base_url": "https://x"}}), encoding="utf-8")

    assert load_configuration(path) == {"api": {"base_url": "https://x"}}


def test_empty_yaml_is_an_empty_mapping(tmp_path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")

    assert load_configuration(path) == {}


@pytest.mark.parametrize(
    "filename, content",
    [
        ("sync.toml", "api = 1"),
        ("sync.json", "{not json"),
        ("sync.yaml", "- just\n- a list\n"),
    ],
)
def test_invalid_configuration_raises(tmp_path, filename, content) -> None:
    path = tmp_path / filename
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_configuration(path)


def test_missing_configuration_raises(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        load_configuration(tmp_path / "nope.yaml")


def test_api_settings_require_base_url() -> None:
    with pytest.raises(ConfigurationError):
        api_settings({"api": {}})

    settings = api_settings({"api": {"base_url": "https://x", "request_timeout": "12"}})
    assert settings.request_timeout == 12.0
    assert settings.token is None


def test_bounded_wait_defaults_and_can_be_disabled() -> None:
    assert bounded_wait_seconds({}) == 5.0
    assert bounded_wait_seconds({"bounded_wait_seconds": None}) is None


def test_disabled_feeds_are_skipped() -> None:
    config = {"feeds": [{"name": "alerts", "enabled": False}, {"name": "pipeline"}]}

    assert [feed["name"] for feed in iter_enabled_feed_configs(config)] == ["pipeline"]


def test_build_client_prefers_configured_token() -> None:
    client = build_client({"api": {"base_url": "https://x", "token": "abc"}})
    assert isinstance(client, DashboardApiClient)
    assert isinstance(client._token_provider, StaticTokenProvider)

    client = build_client({"api": {"base_url": "https://x", "token_env": "CLINIC_TOKEN"}})
    assert isinstance(client._token_provider, EnvTokenProvider)
    assert client._token_provider.variable == "CLINIC_TOKEN"


def test_build_feeds_defaults_to_every_feed() -> None:
    feeds = build_feeds({}, StubClient())

    assert [type(feed) for feed in feeds] == [AlertsFeed, RecentActivityFeed, PipelineFeed]


def test_build_feeds_accepts_class_path_and_options() -> None:
    config = {
        "feeds": [
            {"name": "custom", "class": "lead_sync.feeds.alerts.AlertsFeed", "options": {"limit": 50}},
        ]
    }

    (feed,) = build_feeds(config, StubClient())

    assert isinstance(feed, AlertsFeed)
    assert feed.limit == 50


def test_build_feeds_rejects_unknown_names() -> None:
    with pytest.raises(ConfigurationError):
        build_feeds({"feeds": [{"name": "fax"}]}, StubClient())

    with pytest.raises(ConfigurationError):
        build_feeds({"feeds": [{"class": "lead_sync.feeds.NoSuchFeed"}]}, StubClient())


def test_build_coordinator_wires_persister_and_fallback() -> None:
    client = StubClient()
    config = {"feeds": [{"name": "pipeline"}], "bounded_wait_seconds": 1.5}

    with build_coordinator(config, client=client, fallback=[LeadPatch.of("9")]) as coordinator:
        future = coordinator.update_status("9", "Appointment Booked")
        assert future.result(timeout=5) is True
        assert coordinator._bounded_wait == 1.5
        assert coordinator._fallback == {"pipeline": (LeadPatch.of("9"),)}

    assert [feed.name for feed in coordinator.feeds] == ["pipeline"]
    assert client.updates == [("9", "BOOKED")]


def test_build_coordinator_keeps_an_empty_caller_store() -> None:
    store = LeadStore()
    config = {"feeds": [{"name": "alerts"}], "bounded_wait_seconds": None}

    with build_coordinator(config, client=StubClient(), store=store) as coordinator:
        assert coordinator._store is store
        coordinator.refresh_all().wait(timeout=5)

    assert [lead.name for lead in store.snapshot()] == ["Ada"]
