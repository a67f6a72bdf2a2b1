"""
Source probes: the only place that touches the host.

A probe runs one external command or reads one file and hands back a
SourceResult instead of raising. Collectors sit on top of this and never
spawn processes themselves, which is what lets the tests swap in a
FakeProbe.
"""

from __future__ import annotations

import glob as _glob
import logging
import os
import re
import shutil
import stat
import subprocess
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Sequence

log = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 5.0

_UNITS = ("B", "KB", "MB", "GB", "TB")


class SourceStatus:
    OK = "ok"
    UNAVAILABLE = "unavailable"   # binary not on PATH, file missing
    FAILED = "failed"             # non-zero exit, read error
    TIMEOUT = "timeout"           # exceeded the probe timeout
    EMPTY = "empty"               # ran fine, nothing (matching) came back


@dataclass(frozen=True)
class SourceResult:
    status: str
    text: str = ""
    detail: str = ""   # command line or path, plus exit info

    @property
    def ok(self) -> bool:
        return self.status == SourceStatus.OK

    def describe(self) -> str:
        """One-line, deterministic explanation of a non-ok result."""
        if self.status == SourceStatus.OK:
            return self.text
        if self.status == SourceStatus.UNAVAILABLE:
            return f"Not available: {self.detail}"
        if self.status == SourceStatus.TIMEOUT:
            return f"Timed out: {self.detail}"
        if self.status == SourceStatus.EMPTY:
            return f"No output from: {self.detail}"
        return f"Error executing: {self.detail}"

    @classmethod
    def of_text(cls, text: str, detail: str = "") -> "SourceResult":
        """OK when there is something besides whitespace, EMPTY otherwise."""
        text = text.rstrip("\n")
        if not text.strip():
            return cls(SourceStatus.EMPTY, detail=detail)
        return cls(SourceStatus.OK, text=text, detail=detail)


def format_bytes(num_bytes: float, precision: int = 2) -> str:
    """Scale a byte count to B/KB/MB/GB/TB, e.g. 1536 -> '1.5 KB'."""
    value = float(max(num_bytes, 0))
    power = 0
    while value >= 1024 and power < len(_UNITS) - 1:
        value /= 1024
        power += 1

    value = round(value, precision)
    if value >= 1024 and power < len(_UNITS) - 1:
        # 1048575 B is 1023.999 KB, which rounds to 1024 KB
        value = round(value / 1024, precision)
        power += 1
    if value == int(value):
        value = int(value)
    return f"{value} {_UNITS[power]}"


def filter_lines(
    lines: Sequence[str],
    pattern: Optional[str] = None,
    head: Optional[int] = None,
    tail: Optional[int] = None,
) -> List[str]:
    """grep -i, then head/tail. Same order as `grep ... | tail -n N`."""
    if pattern:
        regex = re.compile(pattern, re.IGNORECASE)
        lines = [line for line in lines if regex.search(line)]
    lines = list(lines)
    if head is not None:
        lines = lines[:head]
    if tail is not None:
        lines = lines[-tail:] if tail > 0 else []
    return lines


class SourceProbe(ABC):
    """Capability set every collector is written against."""

    @abstractmethod
    def run(self, argv: Sequence[str], merge_stderr: bool = False) -> SourceResult:
        """Run a command (no shell) and capture stdout."""
        ...

    @abstractmethod
    def read_file(
        self,
        path: str,
        tail: Optional[int] = None,
        head: Optional[int] = None,
        pattern: Optional[str] = None,
    ) -> SourceResult:
        """Read a text file, optionally filtered and trimmed."""
        ...

    @abstractmethod
    def which(self, name: str) -> bool:
        ...

    @abstractmethod
    def glob(self, pattern: str) -> List[str]:
        ...

    @abstractmethod
    def list_dir(self, path: str) -> List[str]:
        ...


class SystemProbe(SourceProbe):
    """Probes the real host via subprocess and the filesystem."""

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT):
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    def run(self, argv: Sequence[str], merge_stderr: bool = False) -> SourceResult:
        command = " ".join(argv)
        log.debug("run: %s", command)
        try:
            # run() kills and reaps the child on timeout
            proc = subprocess.run(
                list(argv),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merge_stderr else subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                timeout=self._timeout,
                text=True,
                errors="replace",
            )
        except FileNotFoundError:
            log.debug("%s: not installed", argv[0])
            return SourceResult(SourceStatus.UNAVAILABLE, detail=command)
        except subprocess.TimeoutExpired:
            log.warning("%s: timed out after %.1fs", command, self._timeout)
            return SourceResult(
                SourceStatus.TIMEOUT, detail=f"{command} (after {self._timeout:g}s)"
            )
        except OSError as e:
            log.debug("%s: %s", command, e)
            return SourceResult(SourceStatus.FAILED, detail=f"{command} ({e})")

        if proc.returncode != 0:
            log.debug("%s: exit status %d", command, proc.returncode)
            return SourceResult(
                SourceStatus.FAILED,
                text=proc.stdout or "",
                detail=f"{command} (exit status {proc.returncode})",
            )
        return SourceResult.of_text(proc.stdout or "", detail=command)

    def read_file(
        self,
        path: str,
        tail: Optional[int] = None,
        head: Optional[int] = None,
        pattern: Optional[str] = None,
    ) -> SourceResult:
        log.debug("read: %s", path)
        regex = re.compile(pattern, re.IGNORECASE) if pattern else None
        deadline = time.monotonic() + self._timeout
        try:
            # FIFOs and devices can block forever on open()
            if not stat.S_ISREG(os.stat(path).st_mode):
                return SourceResult(SourceStatus.FAILED, detail=f"{path} (not a regular file)")

            # grep while streaming; only the last `tail` matches stay in memory
            kept = deque(maxlen=tail) if tail is not None and head is None else []
            with open(path, encoding="utf-8", errors="replace") as f:
                for line in f:
                    if time.monotonic() > deadline:
                        log.warning("%s: read timed out after %.1fs", path, self._timeout)
                        return SourceResult(
                            SourceStatus.TIMEOUT, detail=f"{path} (after {self._timeout:g}s)"
                        )
                    line = line.rstrip("\n")
                    if regex and not regex.search(line):
                        continue
                    kept.append(line)
                    if head is not None and len(kept) >= head:
                        break
        except FileNotFoundError:
            return SourceResult(SourceStatus.UNAVAILABLE, detail=path)
        except PermissionError as e:
            log.debug("%s: %s", path, e)
            return SourceResult(SourceStatus.FAILED, detail=f"{path} ({e.strerror})")
        except OSError as e:
            log.debug("%s: %s", path, e)
            return SourceResult(SourceStatus.FAILED, detail=f"{path} ({e})")

        lines = filter_lines(list(kept), head=head, tail=tail)
        return SourceResult.of_text("\n".join(lines), detail=path)

    def which(self, name: str) -> bool:
        return shutil.which(name) is not None

    def glob(self, pattern: str) -> List[str]:
        return sorted(_glob.glob(pattern))

    def list_dir(self, path: str) -> List[str]:
        try:
            return sorted(os.listdir(path))
        except OSError:
            return []
