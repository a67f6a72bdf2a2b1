"""Tests for the Rich terminal views and the watch client."""

import json

import httpx
import pytest
from rich.console import Console

from hostpulse.aggregator import SnapshotAggregator
from hostpulse.config import MonitorConfig
from hostpulse.dashboard.terminal import (
    RefreshError,
    WatchState,
    build_display,
    fetch_snapshot,
    run_snapshot,
)
from hostpulse.metrics import HostSnapshot
from hostpulse.mock.fake_probe import demo_probe

URL = "http://web01:8080/"
PAYLOAD = HostSnapshot.placeholder("placeholder text").to_dict()


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _render(renderable) -> str:
    console = Console(width=120, record=True)
    console.print(renderable)
    return console.export_text()


def test_fetch_sends_refresh_header():
    seen = {}

    def handler(request):
        seen["header"] = request.headers.get("X-Requested-With")
        return httpx.Response(200, json=PAYLOAD)

    with _client(handler) as client:
        assert fetch_snapshot(client, URL) == PAYLOAD
    assert seen["header"] == "XMLHttpRequest"


def test_fetch_http_error():
    with _client(lambda request: httpx.Response(502)) as client:
        with pytest.raises(RefreshError):
            fetch_snapshot(client, URL)


def test_fetch_bad_json():
    with _client(lambda request: httpx.Response(200, text="<html>")) as client:
        with pytest.raises(RefreshError, match="invalid JSON"):
            fetch_snapshot(client, URL)


def test_fetch_incomplete_payload():
    with _client(lambda request: httpx.Response(200, json={"cpu": {}})) as client:
        with pytest.raises(RefreshError, match="payload missing memory"):
            fetch_snapshot(client, URL)


def test_fetch_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with _client(handler) as client:
        with pytest.raises(RefreshError, match="connection refused"):
            fetch_snapshot(client, URL)


def test_failed_refresh_keeps_previous_snapshot():
    responses = [httpx.Response(200, json=PAYLOAD), httpx.Response(500)]
    state = WatchState()

    with _client(lambda request: responses.pop(0)) as client:
        assert state.refresh(client, URL) is True
        first_update = state.last_updated
        assert state.refresh(client, URL) is False

    assert state.data == PAYLOAD
    assert state.last_updated == first_update
    assert state.error


def test_successful_refresh_clears_error():
    state = WatchState(error="earlier failure")
    with _client(lambda request: httpx.Response(200, json=PAYLOAD)) as client:
        state.refresh(client, URL)
    assert state.error is None


def test_build_display_shows_panels_and_error():
    text = _render(build_display(PAYLOAD, URL, error="HTTP 500"))
    assert "CPU Usage" in text
    assert "UFW Blocked IPs" in text
    assert "placeholder text" in text
    assert "Refresh failed: HTTP 500" in text


def test_build_display_before_first_snapshot():
    assert "Waiting for first snapshot" in _render(build_display(None, URL))


def test_build_display_keeps_brackets_literal():
    payload = dict(PAYLOAD, php_errors="[error] bad thing")
    assert "[error] bad thing" in _render(build_display(payload, URL))


def test_run_snapshot_json(capsys):
    aggregator = SnapshotAggregator(MonitorConfig(network_sample_seconds=0.01), probe=demo_probe())
    run_snapshot(aggregator, output="json")

    record = json.loads(capsys.readouterr().out)
    assert record["cpu"]["cores"] == "2"
    assert "timestamp" in record
