"""
Snapshot definitions for hostpulse.

Fragments carry the collected text as-is. The only numbers we derive
are the core count here and the byte rates in the network collector.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional, Tuple

# Top-level keys of the JSON payload, in display order
FRAGMENT_KEYS = (
    "cpu",
    "memory",
    "disk",
    "temperature",
    "network",
    "processes",
    "failed_cronjobs",
    "php_errors",
    "sql_errors",
    "openresty_errors",
    "ufw_blocked",
)

TITLES = {
    "cpu": "CPU Usage",
    "memory": "Memory Usage",
    "disk": "Disk Usage",
    "temperature": "Temperature Information",
    "network": "Network",
    "processes": "Top Processes",
    "failed_cronjobs": "Failed Cronjobs",
    "php_errors": "PHP Errors",
    "sql_errors": "SQL Errors",
    "openresty_errors": "OpenResty/Nginx Errors",
    "ufw_blocked": "UFW Blocked IPs",
}


@dataclass(frozen=True)
class CpuFragment:
    usage: str
    load: str
    cores: str

    @property
    def core_count(self) -> Optional[int]:
        try:
            return int(self.cores.strip())
        except ValueError:
            return None

    def render(self) -> str:
        return f"CPU Usage: {self.usage}\nLoad Average: {self.load}\nCPU Cores: {self.cores}"

    def to_dict(self) -> dict:
        return {"usage": self.usage, "load": self.load, "cores": self.cores}

    @classmethod
    def placeholder(cls, text: str) -> "CpuFragment":
        return cls(usage=text, load=text, cores=text)


@dataclass(frozen=True)
class DiskFragment:
    space: str
    io_stats: str

    def to_dict(self) -> dict:
        return {"space": self.space, "io_stats": self.io_stats}

    @classmethod
    def placeholder(cls, text: str) -> "DiskFragment":
        return cls(space=text, io_stats=text)


@dataclass(frozen=True)
class NetworkFragment:
    interfaces: str
    speed_info: str

    def to_dict(self) -> dict:
        return {"interfaces": self.interfaces, "speed_info": self.speed_info}

    @classmethod
    def placeholder(cls, text: str) -> "NetworkFragment":
        return cls(interfaces=text, speed_info=text)


# Fragments that are more than a single string
_COMPOSITE = {
    "cpu": CpuFragment,
    "disk": DiskFragment,
    "network": NetworkFragment,
}


def placeholder_fragment(key: str, text: str):
    """Fragment of the right shape for `key`, filled with `text`."""
    fragment_cls = _COMPOSITE.get(key)
    return fragment_cls.placeholder(text) if fragment_cls else text


@dataclass(frozen=True)
class HostSnapshot:
    """One point-in-time view of host health. Built once, never mutated."""

    cpu: CpuFragment
    memory: str
    disk: DiskFragment
    temperature: str
    network: NetworkFragment
    processes: str
    failed_cronjobs: str
    php_errors: str
    sql_errors: str
    openresty_errors: str
    ufw_blocked: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """The JSON payload served to refresh requests."""
        out = {}
        for key in FRAGMENT_KEYS:
            value = getattr(self, key)
            out[key] = value.to_dict() if hasattr(value, "to_dict") else value
        return out

    def panels(self) -> Iterator[Tuple[str, str, str]]:
        return iter_panels(self.to_dict())

    @classmethod
    def placeholder(cls, text: str) -> "HostSnapshot":
        return cls(**{key: placeholder_fragment(key, text) for key in FRAGMENT_KEYS})


def iter_panels(data: dict) -> Iterator[Tuple[str, str, str]]:
    """Yield (element_id, title, text) for every panel on the dashboard.

    Works off the payload dict so the HTML page, the browser refresh
    script and the terminal view all show exactly the same text.
    """
    yield "cpu-info", TITLES["cpu"], CpuFragment(**data["cpu"]).render()
    yield "memory-info", TITLES["memory"], data["memory"]
    yield "disk-space", TITLES["disk"], data["disk"]["space"]
    yield "disk-io", "Disk I/O Statistics", data["disk"]["io_stats"]
    yield "temp-info", TITLES["temperature"], data["temperature"]
    yield "network-info", "Network Interfaces", data["network"]["interfaces"]
    yield "network-speed", "Network Speed", data["network"]["speed_info"]
    yield "process-list", TITLES["processes"], data["processes"]
    yield "cronjobs-info", TITLES["failed_cronjobs"], data["failed_cronjobs"]
    yield "php-errors", TITLES["php_errors"], data["php_errors"]
    yield "sql-errors", TITLES["sql_errors"], data["sql_errors"]
    yield "openresty-errors", TITLES["openresty_errors"], data["openresty_errors"]
    yield "ufw-blocked", TITLES["ufw_blocked"], data["ufw_blocked"]
