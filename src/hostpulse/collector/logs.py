"""
Log-derived collectors: failed cron jobs and application error logs.

Both work the same way: look in a handful of well-known places, keep
the lines that look like trouble, and label each block with the file it
came from.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from hostpulse.collector.base import FragmentCollector
from hostpulse.probe import SourceProbe, filter_lines

LOG_TAIL_LINES = 20
CRON_SYSLOG_MATCHES = 10
MAIL_HEAD_LINES = 20
MAIL_CONTEXT_LINES = 5

_MAIL_CRON_RE = re.compile(r"Cron.*fail")


def _with_context(lines: Sequence[str], regex: re.Pattern, after: int) -> List[str]:
    """Matching lines plus `after` lines of trailing context (grep -A)."""
    keep: List[str] = []
    last_kept = -1
    for i, line in enumerate(lines):
        if not regex.search(line):
            continue
        for j in range(max(i, last_kept + 1), min(i + after + 1, len(lines))):
            keep.append(lines[j])
        last_kept = max(last_kept, min(i + after, len(lines) - 1))
    return keep


class CronFailureCollector(FragmentCollector):
    key = "failed_cronjobs"

    PLACEHOLDER = "No recent cron failures detected in logs."

    def __init__(self, probe: SourceProbe, syslog_path: str = "/var/log/syslog",
                 mail_spool: str = "/var/mail"):
        super().__init__(probe)
        self._syslog_path = syslog_path
        self._mail_spool = mail_spool

    def collect(self) -> str:
        sections = []

        syslog = self._from_syslog()
        if syslog:
            sections.append(f"Recent cron failures from syslog:\n{syslog}")

        mail = self._from_mail()
        if mail:
            sections.append(f"Potential cron failures from mail:\n{mail}")

        return "\n\n".join(sections) or self.PLACEHOLDER

    def _from_syslog(self) -> str:
        # case-sensitive CRON tag, case-insensitive "fail"
        result = self._probe.read_file(self._syslog_path, pattern="CRON")
        if not result.ok:
            return ""
        lines = [line for line in result.text.splitlines() if "CRON" in line]
        return "\n".join(filter_lines(lines, pattern="fail", tail=CRON_SYSLOG_MATCHES))

    def _from_mail(self) -> str:
        found: List[str] = []
        for path in self._probe.glob(f"{self._mail_spool}/*"):
            result = self._probe.read_file(path, head=MAIL_HEAD_LINES)
            if not result.ok:
                continue
            found.extend(_with_context(result.text.splitlines(), _MAIL_CRON_RE, MAIL_CONTEXT_LINES))
        return "\n".join(found)


class LogErrorCollector(FragmentCollector):
    """Tail a list of candidate logs and keep lines matching `keywords`.

    Candidate paths may be glob patterns. Missing or unreadable files
    are skipped silently; that's the normal case on most hosts.
    """

    def __init__(
        self,
        probe: SourceProbe,
        key: str,
        label: str,
        keywords: Sequence[str],
        candidates: Iterable[str],
        tail_lines: int = LOG_TAIL_LINES,
    ):
        super().__init__(probe)
        self.key = key
        self._label = label
        self._pattern = "|".join(re.escape(k) for k in keywords)
        self._candidates = tuple(candidates)
        self._tail_lines = tail_lines

    @property
    def placeholder_text(self) -> str:
        return f"No recent {self._label} errors found in common log locations."

    def candidate_paths(self) -> List[str]:
        paths: List[str] = []
        for candidate in self._candidates:
            matches = self._probe.glob(candidate) if _is_glob(candidate) else [candidate]
            for path in matches:
                if path not in paths:
                    paths.append(path)
        return paths

    def collect(self) -> str:
        blocks = []
        for path in self.candidate_paths():
            # tail first, then grep: only the last N lines are considered
            result = self._probe.read_file(path, tail=self._tail_lines)
            if not result.ok:
                continue
            errors = filter_lines(result.text.splitlines(), pattern=self._pattern)
            if errors:
                blocks.append(f"Recent {self._label} errors from {path}:\n" + "\n".join(errors))
        return "\n\n".join(blocks) or self.placeholder_text


class PhpErrorCollector(LogErrorCollector):
    """PHP variant; also asks `php -i` where error_log points."""

    def __init__(self, probe: SourceProbe, candidates: Iterable[str]):
        super().__init__(
            probe,
            key="php_errors",
            label="PHP",
            keywords=("error", "fatal", "warning", "parse"),
            candidates=candidates,
        )

    def configured_log(self) -> Optional[str]:
        result = self._probe.run(["php", "-i"])
        if not result.ok:
            return None
        for line in result.text.splitlines():
            if "error_log" in line and "no value" not in line:
                # "error_log => /local/value => /master/value"
                value = line.rsplit("=>", 1)[-1].strip()
                return value or None
        return None

    def candidate_paths(self) -> List[str]:
        paths = super().candidate_paths()
        configured = self.configured_log()
        if configured and configured not in paths:
            paths.append(configured)
        return paths


def _is_glob(path: str) -> bool:
    return any(ch in path for ch in "*?[")


def sql_error_collector(probe: SourceProbe, candidates: Iterable[str]) -> LogErrorCollector:
    return LogErrorCollector(
        probe,
        key="sql_errors",
        label="SQL",
        keywords=("error", "warning", "fail"),
        candidates=candidates,
    )


def proxy_error_collector(probe: SourceProbe, candidates: Iterable[str]) -> LogErrorCollector:
    return LogErrorCollector(
        probe,
        key="openresty_errors",
        label="OpenResty/Nginx",
        keywords=("error", "fatal", "emerg", "crit"),
        candidates=candidates,
    )
