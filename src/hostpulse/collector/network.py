"""
Network interfaces and current throughput.

Throughput tries three sources in order:

1. iftop via `sudo -n`, only when privileged capture is switched on.
   Without a NOPASSWD sudoers rule for the dashboard user this always
   fails and we fall through.
2. vnstat's live traffic mode.
3. Our own measurement from the kernel byte counters in
   /sys/class/net/<iface>/statistics.

The manual path blocks for the sample window. All interfaces are read,
then one sleep, then all re-read, so it costs one window no matter how
many interfaces the host has.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from hostpulse.collector.base import FragmentCollector, first_available, labelled
from hostpulse.metrics import NetworkFragment
from hostpulse.probe import SourceProbe, format_bytes

log = logging.getLogger(__name__)

SYS_CLASS_NET = "/sys/class/net"

# iftop writes these to stdout/stderr when it can't open the interface
_IFTOP_REJECT_MARKERS = ("permission denied", "error")


@dataclass
class CounterSample:
    rx_bytes: int
    tx_bytes: int


@dataclass
class InterfaceRate:
    interface: str
    rx_per_sec: float
    tx_per_sec: float

    def render(self) -> str:
        return (
            f"{self.interface}: Download: {format_bytes(self.rx_per_sec)}/s, "
            f"Upload: {format_bytes(self.tx_per_sec)}/s"
        )


def compute_rate(
    interface: str, start: CounterSample, end: CounterSample, seconds: float
) -> InterfaceRate:
    """Bytes/sec between two counter reads. Counter resets clamp to 0."""
    seconds = max(seconds, 1e-9)
    return InterfaceRate(
        interface=interface,
        rx_per_sec=max(end.rx_bytes - start.rx_bytes, 0) / seconds,
        tx_per_sec=max(end.tx_bytes - start.tx_bytes, 0) / seconds,
    )


class NetworkCollector(FragmentCollector):
    key = "network"

    def __init__(
        self,
        probe: SourceProbe,
        sample_seconds: float = 1.0,
        privileged_capture: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(probe)
        self._sample_seconds = sample_seconds
        self._privileged_capture = privileged_capture
        self._sleep = sleep

    def collect(self) -> NetworkFragment:
        return NetworkFragment(
            interfaces=self._interfaces(),
            speed_info=first_available(self._from_iftop, self._from_vnstat, self._measure),
        )

    def _interfaces(self) -> str:
        # /proc/net/dev starts with two header lines
        result = self._probe.read_file("/proc/net/dev")
        if not result.ok:
            return result.describe()
        return "\n".join(result.text.splitlines()[2:]) or "No network interfaces found."

    def _from_iftop(self) -> Optional[str]:
        if not self._privileged_capture or not self._probe.which("iftop"):
            return None
        result = self._probe.run(
            ["sudo", "-n", "iftop", "-t", "-s", "2", "-L", "5"], merge_stderr=True
        )
        lowered = result.text.lower()
        if any(marker in lowered for marker in _IFTOP_REJECT_MARKERS):
            log.debug("iftop output rejected: %s", result.text[:200])
            return None
        return labelled("Real-time network traffic (iftop):", result)

    def _from_vnstat(self) -> Optional[str]:
        if not self._probe.which("vnstat"):
            return None
        result = self._probe.run(["vnstat", "-tr", "2"], merge_stderr=True)
        return labelled("Current network traffic (vnstat):", result)

    def _read_counters(self, interface: str) -> Optional[CounterSample]:
        base = f"{SYS_CLASS_NET}/{interface}/statistics"
        rx = self._probe.read_file(f"{base}/rx_bytes")
        tx = self._probe.read_file(f"{base}/tx_bytes")
        if not (rx.ok and tx.ok):
            return None
        try:
            return CounterSample(int(rx.text.strip()), int(tx.text.strip()))
        except ValueError:
            return None

    def _measure(self) -> str:
        interfaces = [i for i in self._probe.list_dir(SYS_CLASS_NET) if i != "lo"]
        lines = ["Current network speeds (calculated):"]
        if not interfaces:
            lines.append("No network interfaces found.")
            return "\n".join(lines)

        started: Dict[str, Optional[CounterSample]] = {
            iface: self._read_counters(iface) for iface in interfaces
        }
        started_at = time.monotonic()
        self._sleep(self._sample_seconds)
        # use the nominal window if the sleep was faked or cut short
        elapsed = max(time.monotonic() - started_at, self._sample_seconds)

        rates: List[InterfaceRate] = []
        for iface in interfaces:
            start = started[iface]
            end = self._read_counters(iface) if start else None
            if start is None or end is None:
                lines.append(f"{iface}: counters unavailable")
                continue
            rate = compute_rate(iface, start, end, elapsed)
            rates.append(rate)
            lines.append(rate.render())

        log.debug("measured %d interfaces over %.2fs", len(rates), elapsed)
        return "\n".join(lines)
