"""Tests for the network collector and its three-tier fallback."""

from hostpulse.collector.network import CounterSample, NetworkCollector, compute_rate
from hostpulse.metrics import NetworkFragment
from hostpulse.mock.fake_probe import FakeProbe, unavailable_probe
from hostpulse.probe import format_bytes

RX = "/sys/class/net/eth0/statistics/rx_bytes"
TX = "/sys/class/net/eth0/statistics/tx_bytes"


def _no_sleep(seconds):
    pass


def _counter_probe(**extra) -> FakeProbe:
    files = {
        "/proc/net/dev": "Inter-| header\n face | header\n  eth0: 2500 0 0",
        RX: ["1000", "2500"],
        TX: ["4096", "6144"],
        "/sys/class/net/lo/statistics/rx_bytes": "1",
        "/sys/class/net/lo/statistics/tx_bytes": "1",
    }
    return FakeProbe(files=files, **extra)


def test_compute_rate_from_counter_delta():
    rate = compute_rate("eth0", CounterSample(1000, 0), CounterSample(2500, 2048), 1.0)
    assert rate.rx_per_sec == 1500
    assert rate.tx_per_sec == 2048
    assert rate.render() == f"eth0: Download: {format_bytes(1500)}/s, Upload: 2 KB/s"


def test_compute_rate_counter_reset_clamps_to_zero():
    rate = compute_rate("eth0", CounterSample(5000, 5000), CounterSample(10, 10), 1.0)
    assert rate.rx_per_sec == 0
    assert rate.tx_per_sec == 0


def test_manual_measurement():
    fragment = NetworkCollector(_counter_probe(), sleep=_no_sleep).collect()
    assert isinstance(fragment, NetworkFragment)
    assert fragment.interfaces == "  eth0: 2500 0 0"
    assert fragment.speed_info == (
        "Current network speeds (calculated):\n"
        "eth0: Download: 1.46 KB/s, Upload: 2 KB/s"
    )


def test_manual_measurement_reads_sleep_reads():
    events = []
    probe = _counter_probe()
    collector = NetworkCollector(probe, sleep=lambda s: events.append(("sleep", s)))
    collector.collect()

    reads = [c for c in probe.calls if c.startswith("/sys/class/net/eth0")]
    assert reads == [RX, TX, RX, TX]
    assert events == [("sleep", 1.0)]
    # both first reads happen before anything after the sleep
    first_after = probe.calls.index(RX, probe.calls.index(RX) + 1)
    assert probe.calls.index(TX) < first_after


def test_manual_measurement_skips_loopback():
    fragment = NetworkCollector(_counter_probe(), sleep=_no_sleep).collect()
    assert "lo:" not in fragment.speed_info


def test_manual_measurement_unreadable_interface():
    probe = FakeProbe(files={
        RX: "100",
        "/sys/class/net/wlan0/statistics/rx_bytes": "garbage",
        "/sys/class/net/wlan0/statistics/tx_bytes": "1",
    })
    speed = NetworkCollector(probe, sleep=_no_sleep).collect().speed_info
    assert "eth0: counters unavailable" in speed
    assert "wlan0: counters unavailable" in speed


def test_vnstat_preferred_over_manual():
    probe = _counter_probe(commands={"vnstat -tr 2": "eth0 rx 12 kbit/s"}, binaries={"vnstat"})
    speed = NetworkCollector(probe, sleep=_no_sleep).collect().speed_info
    assert speed == "Current network traffic (vnstat):\neth0 rx 12 kbit/s"
    assert RX not in probe.calls


def test_iftop_skipped_unless_privileged_capture_enabled():
    commands = {
        "sudo -n iftop -t -s 2 -L 5": "Total send rate: 1Kb",
        "vnstat -tr 2": "vnstat output",
    }
    probe = _counter_probe(commands=commands, binaries={"iftop", "vnstat"})
    speed = NetworkCollector(probe, sleep=_no_sleep).collect().speed_info
    assert speed.startswith("Current network traffic (vnstat)")
    assert "sudo -n iftop -t -s 2 -L 5" not in probe.calls


def test_iftop_used_when_enabled():
    probe = _counter_probe(
        commands={"sudo -n iftop -t -s 2 -L 5": "Total send rate: 1Kb"}, binaries={"iftop"}
    )
    collector = NetworkCollector(probe, privileged_capture=True, sleep=_no_sleep)
    assert collector.collect().speed_info == "Real-time network traffic (iftop):\nTotal send rate: 1Kb"


def test_iftop_permission_denied_falls_through():
    probe = _counter_probe(
        commands={
            "sudo -n iftop -t -s 2 -L 5": "pcap_open_live(eth0): Permission denied",
            "vnstat -tr 2": "vnstat output",
        },
        binaries={"iftop", "vnstat"},
    )
    collector = NetworkCollector(probe, privileged_capture=True, sleep=_no_sleep)
    assert collector.collect().speed_info == "Current network traffic (vnstat):\nvnstat output"


def test_no_interfaces_at_all():
    fragment = NetworkCollector(unavailable_probe(), sleep=_no_sleep).collect()
    assert fragment.interfaces == "Not available: /proc/net/dev"
    assert fragment.speed_info == "Current network speeds (calculated):\nNo network interfaces found."
