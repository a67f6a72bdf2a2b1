"""
Snapshot aggregation: run every collector, wait up to the request
deadline, and assemble a complete HostSnapshot.

Collectors don't depend on each other, so they fan out on a thread pool.
Anything that crashes or overruns the deadline is swapped for a
placeholder; collect_all() itself never raises.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence

from hostpulse.collector.base import FragmentCollector
from hostpulse.collector.firewall import FirewallCollector
from hostpulse.collector.logs import (
    CronFailureCollector,
    PhpErrorCollector,
    proxy_error_collector,
    sql_error_collector,
)
from hostpulse.collector.network import NetworkCollector
from hostpulse.collector.system import (
    CpuCollector,
    DiskCollector,
    MemoryCollector,
    ProcessCollector,
)
from hostpulse.collector.temperature import TemperatureCollector
from hostpulse.config import MonitorConfig
from hostpulse.metrics import FRAGMENT_KEYS, TITLES, HostSnapshot, placeholder_fragment
from hostpulse.probe import SourceProbe, SystemProbe

log = logging.getLogger(__name__)


def default_collectors(config: MonitorConfig, probe: SourceProbe) -> List[FragmentCollector]:
    return [
        CpuCollector(probe),
        MemoryCollector(probe),
        DiskCollector(probe),
        TemperatureCollector(probe),
        NetworkCollector(
            probe,
            sample_seconds=config.network_sample_seconds,
            privileged_capture=config.privileged_capture,
        ),
        ProcessCollector(probe),
        CronFailureCollector(probe, syslog_path=config.syslog_path, mail_spool=config.mail_spool),
        PhpErrorCollector(probe, candidates=config.php_logs),
        sql_error_collector(probe, candidates=config.sql_logs),
        proxy_error_collector(probe, candidates=config.proxy_logs),
        FirewallCollector(probe, log_path=config.ufw_log_path),
    ]


class SnapshotAggregator:

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        probe: Optional[SourceProbe] = None,
        collectors: Optional[Sequence[FragmentCollector]] = None,
    ):
        self._config = (config or MonitorConfig()).validate()
        self._probe = probe or SystemProbe(timeout=self._config.probe_timeout)
        if collectors is None:
            collectors = default_collectors(self._config, self._probe)
        self._collectors = list(collectors)

    @property
    def config(self) -> MonitorConfig:
        return self._config

    def name(self) -> str:
        return f"{type(self._probe).__name__} ({len(self._collectors)} collectors)"

    def collect_all(self) -> HostSnapshot:
        deadline = self._config.request_deadline
        started = time.monotonic()

        executor = ThreadPoolExecutor(
            max_workers=self._config.max_workers, thread_name_prefix="hostpulse-collect"
        )
        futures = {executor.submit(c.collect): c for c in self._collectors}
        _, pending = wait(futures, timeout=deadline)
        # don't block on stragglers; their probes are bounded by the probe timeout
        executor.shutdown(wait=False, cancel_futures=True)

        fragments: Dict[str, object] = {}
        for future, collector in futures.items():
            if future in pending:
                log.warning("%s still running after %.1fs, abandoning", collector.name(), deadline)
                fragments[collector.key] = collector.placeholder(
                    f"{collector.title} timed out after {deadline:g}s."
                )
                continue
            try:
                fragment = future.result()
            except Exception as e:
                log.exception("%s failed", collector.name())
                fragment = collector.placeholder(
                    f"{collector.title} unavailable: collector error ({e})"
                )
            if not fragment:
                fragment = collector.placeholder(f"{collector.title}: no data collected.")
            fragments[collector.key] = fragment

        for key in FRAGMENT_KEYS:
            if key not in fragments:
                fragments[key] = placeholder_fragment(key, f"{TITLES[key]}: not collected.")

        log.info(
            "Collected %d fragments in %.2fs (%d timed out)",
            len(self._collectors), time.monotonic() - started, len(pending),
        )
        return HostSnapshot(**{key: fragments[key] for key in FRAGMENT_KEYS})
