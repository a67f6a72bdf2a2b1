"""UFW: top source addresses among recent blocked packets."""

from __future__ import annotations

import re
from collections import Counter
from typing import List, Tuple

from hostpulse.collector.base import FragmentCollector
from hostpulse.probe import SourceProbe

BLOCK_LINES = 20
TOP_IPS = 10

_SRC_RE = re.compile(r"SRC=(\d+\.\d+\.\d+\.\d+)")

NOT_ACTIVE = "UFW is not installed or not active."


def count_sources(log_text: str) -> List[Tuple[str, int]]:
    """(ip, count) pairs, busiest first; ties keep first-seen order."""
    counts = Counter(_SRC_RE.findall(log_text))
    # Counter keeps insertion order and sorted() is stable
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


class FirewallCollector(FragmentCollector):
    key = "ufw_blocked"

    def __init__(self, probe: SourceProbe, log_path: str = "/var/log/ufw.log"):
        super().__init__(probe)
        self._log_path = log_path

    def collect(self) -> str:
        if not self._probe.which("ufw"):
            return NOT_ACTIVE
        # `ufw status` needs root; a failure here is not "not installed"
        status = self._probe.run(["ufw", "status"])
        if not status.ok:
            return f"UFW status unavailable: {status.describe()}"
        if "inactive" in status.text:
            return NOT_ACTIVE

        blocked = self._probe.read_file(self._log_path, pattern="UFW BLOCK", tail=BLOCK_LINES)
        ranked = count_sources(blocked.text) if blocked.ok else []
        if not ranked:
            return (
                "No recently blocked IPs found in UFW logs.\n"
                f"Check {self._log_path} for more information."
            )

        lines = ["Top blocked IPs (UFW):"]
        lines.extend(f"{ip} - {count} blocks" for ip, count in ranked[:TOP_IPS])
        return "\n".join(lines)
