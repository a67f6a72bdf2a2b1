"""Tests for snapshot aggregation: completeness, containment, deadline."""

import time

from hostpulse.aggregator import SnapshotAggregator, default_collectors
from hostpulse.collector.base import FragmentCollector
from hostpulse.collector.system import MemoryCollector
from hostpulse.config import MonitorConfig
from hostpulse.metrics import FRAGMENT_KEYS, CpuFragment, DiskFragment, NetworkFragment
from hostpulse.mock.fake_probe import FakeProbe, demo_probe, unavailable_probe
from hostpulse.probe import SystemProbe

FAST = MonitorConfig(network_sample_seconds=0.01)


def _assert_complete(payload: dict):
    assert list(payload) == list(FRAGMENT_KEYS)
    for key, value in payload.items():
        if isinstance(value, dict):
            assert value, key
            for sub_key, text in value.items():
                assert isinstance(text, str) and text.strip(), f"{key}.{sub_key}"
        else:
            assert isinstance(value, str) and value.strip(), key


class _Exploding(FragmentCollector):
    key = "memory"

    def collect(self):
        raise RuntimeError("boom")


class _Sleepy(FragmentCollector):
    key = "temperature"

    def collect(self):
        time.sleep(2)
        return "too late"


def test_default_collectors_cover_every_key():
    keys = [c.key for c in default_collectors(FAST, unavailable_probe())]
    assert sorted(keys) == sorted(FRAGMENT_KEYS)


def test_snapshot_complete_on_bare_host():
    snapshot = SnapshotAggregator(FAST, probe=unavailable_probe()).collect_all()
    _assert_complete(snapshot.to_dict())
    assert isinstance(snapshot.cpu, CpuFragment)
    assert isinstance(snapshot.disk, DiskFragment)
    assert isinstance(snapshot.network, NetworkFragment)


def test_bare_host_placeholders_are_deterministic():
    first = SnapshotAggregator(FAST, probe=unavailable_probe()).collect_all().to_dict()
    second = SnapshotAggregator(FAST, probe=unavailable_probe()).collect_all().to_dict()
    assert first == second


def test_snapshot_complete_on_demo_host():
    snapshot = SnapshotAggregator(FAST, probe=demo_probe()).collect_all()
    payload = snapshot.to_dict()
    _assert_complete(payload)
    assert payload["cpu"]["cores"] == "2"
    assert "45.155.205.11 - 6 blocks" in payload["ufw_blocked"]
    assert payload["network"]["speed_info"].startswith("Current network speeds (calculated):\neth0:")


def test_crashing_collector_is_contained():
    probe = demo_probe()
    collectors = [c for c in default_collectors(FAST, probe) if c.key != "memory"]
    collectors.append(_Exploding(probe))

    snapshot = SnapshotAggregator(FAST, probe=probe, collectors=collectors).collect_all()
    assert snapshot.memory == "Memory Usage unavailable: collector error (boom)"
    assert snapshot.cpu.cores == "2"


def test_missing_collector_gets_placeholder():
    probe = demo_probe()
    snapshot = SnapshotAggregator(FAST, probe=probe, collectors=[MemoryCollector(probe)]).collect_all()
    _assert_complete(snapshot.to_dict())
    assert snapshot.ufw_blocked == "UFW Blocked IPs: not collected."
    assert snapshot.disk.space == "Disk Usage: not collected."


def test_deadline_returns_partial_snapshot():
    config = MonitorConfig(request_deadline=0.3, probe_timeout=0.1)
    probe = demo_probe()
    collectors = [MemoryCollector(probe), _Sleepy(probe)]

    started = time.monotonic()
    snapshot = SnapshotAggregator(config, probe=probe, collectors=collectors).collect_all()
    elapsed = time.monotonic() - started

    assert elapsed < 1.5
    assert snapshot.temperature == "Temperature Information timed out after 0.3s."
    assert "Mem:" in snapshot.memory


def test_hung_probe_inside_collector_respects_deadline():
    probe = FakeProbe(commands={"free -m": "Mem: 1 2 3"}, delays={"free -m": 2.0})
    config = MonitorConfig(request_deadline=0.3, probe_timeout=0.1)

    started = time.monotonic()
    snapshot = SnapshotAggregator(config, probe=probe, collectors=[MemoryCollector(probe)]).collect_all()

    assert time.monotonic() - started < 1.5
    assert snapshot.memory == "Memory Usage timed out after 0.3s."


def test_collectors_run_concurrently():
    class _Slow(FragmentCollector):
        def __init__(self, probe, key):
            super().__init__(probe)
            self.key = key

        def collect(self):
            time.sleep(0.3)
            return f"{self.key} done"

    probe = unavailable_probe()
    collectors = [_Slow(probe, k) for k in ("memory", "temperature", "processes", "php_errors")]

    started = time.monotonic()
    snapshot = SnapshotAggregator(FAST, probe=probe, collectors=collectors).collect_all()
    assert time.monotonic() - started < 1.0
    assert snapshot.processes == "processes done"


def test_hung_command_yields_timeout_text_within_deadline():
    class _Hanging(FragmentCollector):
        key = "processes"

        def collect(self):
            return self._probe.run(["sleep", "30"]).describe()

    config = MonitorConfig(request_deadline=5.0, probe_timeout=0.2)
    probe = SystemProbe(timeout=config.probe_timeout)

    started = time.monotonic()
    snapshot = SnapshotAggregator(config, probe=probe, collectors=[_Hanging(probe)]).collect_all()

    assert time.monotonic() - started < 3.0
    assert snapshot.processes == "Timed out: sleep 30 (after 0.2s)"
