"""
In-memory probe with canned command output and files.

Used by the tests, and by `hostpulse --mock` so the dashboard can be
demoed on a laptop that has none of the server tools. Sample output is
loosely based on a small Ubuntu VPS running nginx + MariaDB.
"""

from __future__ import annotations

import fnmatch
import random
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from hostpulse.probe import SourceProbe, SourceResult, SourceStatus, filter_lines

# A canned response: plain text, a ready-made result, a callable producing
# either, or a list consumed one item per call (the last one repeats).
Response = Union[str, SourceResult, Callable[[], Union[str, SourceResult]], list]


class FakeProbe(SourceProbe):

    def __init__(
        self,
        commands: Optional[Dict[str, Response]] = None,
        files: Optional[Dict[str, Response]] = None,
        binaries: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None,
    ):
        self.commands = dict(commands or {})
        self.files = dict(files or {})
        self.binaries = set(binaries)
        self.delays = dict(delays or {})   # key -> seconds to block first
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def _resolve(self, table: Dict[str, Response], key: str) -> SourceResult:
        with self._lock:
            self.calls.append(key)
            if key not in table:
                return SourceResult(SourceStatus.UNAVAILABLE, detail=key)
            response = table[key]
            if isinstance(response, list):
                response = response.pop(0) if len(response) > 1 else response[0]

        delay = self.delays.get(key)
        if delay:
            time.sleep(delay)

        if callable(response):
            response = response()
        if isinstance(response, SourceResult):
            return response
        return SourceResult.of_text(response, detail=key)

    def run(self, argv: Sequence[str], merge_stderr: bool = False) -> SourceResult:
        return self._resolve(self.commands, " ".join(argv))

    def read_file(
        self,
        path: str,
        tail: Optional[int] = None,
        head: Optional[int] = None,
        pattern: Optional[str] = None,
    ) -> SourceResult:
        result = self._resolve(self.files, path)
        if not result.ok:
            return result
        lines = filter_lines(result.text.splitlines(), pattern=pattern, head=head, tail=tail)
        return SourceResult.of_text("\n".join(lines), detail=path)

    def which(self, name: str) -> bool:
        return name in self.binaries

    def glob(self, pattern: str) -> List[str]:
        return sorted(p for p in self.files if fnmatch.fnmatch(p, pattern))

    def list_dir(self, path: str) -> List[str]:
        prefix = path.rstrip("/") + "/"
        children = {p[len(prefix):].split("/", 1)[0] for p in self.files if p.startswith(prefix)}
        return sorted(children)


def unavailable_probe() -> FakeProbe:
    """A host with none of the tools and none of the files."""
    return FakeProbe()


_TOP = """\
top - 14:02:11 up 12 days,  3:41,  1 user,  load average: 0.42, 0.37, 0.31
Tasks: 142 total,   1 running, 141 sleeping,   0 stopped,   0 zombie
%Cpu(s):  6.1 us,  1.8 sy,  0.0 ni, 91.7 id,  0.2 wa,  0.0 hi,  0.2 si,  0.0 st
MiB Mem :   3931.2 total,    412.6 free,   1866.0 used,   1652.6 buff/cache"""

_FREE = """\
               total        used        free      shared  buff/cache   available
Mem:            3931        1866         412          58        1652        1771
Swap:           2047         112        1935"""

_DF = """\
Filesystem      Size  Used Avail Use% Mounted on
udev            1.9G     0  1.9G   0% /dev
tmpfs           394M  1.2M  393M   1% /run
/dev/vda1        78G   31G   44G  42% /
tmpfs           2.0G     0  2.0G   0% /dev/shm"""

_IOSTAT = """\
Linux 5.15.0-105-generic (web01) 	10/19/2026 	_x86_64_	(2 CPU)

Device            r/s     rkB/s   rrqm/s  %rrqm r_await rareq-sz     w/s     wkB/s   %util
vda              0.00      0.00     0.00   0.00    0.00     0.00    3.00     28.00   0.40"""

_PS = """\
USER         PID %CPU %MEM    VSZ   RSS TTY      STAT START   TIME COMMAND
mysql        812  4.2 11.8 1734920 476212 ?     Ssl  Oct07  51:02 /usr/sbin/mariadbd
www-data    2231  1.3  2.1 258412 86120 ?       S    13:40   0:19 php-fpm: pool www
www-data    2232  1.1  2.0 258412 82004 ?       S    13:40   0:16 php-fpm: pool www
root         655  0.4  0.9 118264 37112 ?       Ssl  Oct07   6:12 /usr/bin/containerd
www-data    1190  0.2  0.3  57012 12820 ?       S    Oct07   3:02 nginx: worker process
root           1  0.0  0.3 167724 12928 ?       Ss   Oct07   0:41 /sbin/init
root         402  0.0  0.4  47688 16284 ?       S<s  Oct07   0:12 /lib/systemd/systemd-journald
root         640  0.0  0.1   6896  2944 ?       Ss   Oct07   0:03 /usr/sbin/cron -f
syslog       644  0.0  0.1 222400  5620 ?       Ssl  Oct07   0:09 /usr/sbin/rsyslogd -n
root         721  0.0  0.2  15432  8920 ?       Ss   Oct07   0:00 sshd: /usr/sbin/sshd -D
root         998  0.0  0.0   6176  1088 tty1    Ss+  Oct07   0:00 /sbin/agetty tty1"""

_NET_DEV = """\
Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
    lo: 48211022  312044    0    0    0     0          0         0 48211022  312044    0    0    0     0       0          0
  eth0: 9182733121 8120331    0  112    0     0          0         0 2210332981 4411201    0    0    0     0       0          0"""

_SYSLOG = """\
Oct 19 13:00:01 web01 CRON[30121]: (root) CMD (/usr/local/bin/backup.sh)
Oct 19 13:00:03 web01 CRON[30120]: (CRON) info (No MTA installed, discarding output)
Oct 19 13:30:01 web01 CRON[30488]: (www-data) CMD (php /var/www/app/artisan schedule:run)
Oct 19 13:30:02 web01 CRON[30487]: pam_unix(cron:session): authentication failure; user=deploy"""

_NGINX_ERROR = """\
2026/10/19 13:41:07 [error] 1190#1190: *5512 upstream timed out (110: Connection timed out) while reading response header from upstream
2026/10/19 13:52:44 [notice] 1189#1189: signal process started
2026/10/19 13:58:19 [crit] 1190#1190: *5720 SSL_do_handshake() failed (SSL: error:0A00006C:SSL routines::bad key share)"""

_MYSQL_ERROR = """\
2026-10-19 13:10:02 0 [Note] InnoDB: Buffer pool(s) load completed at 261019 13:10:02
2026-10-19 13:44:51 412 [Warning] Aborted connection 412 to db: 'app' user: 'app' host: 'localhost' (Got timeout reading communication packets)"""

_UFW_LOG = "\n".join(
    f"Oct 19 13:{m:02d}:11 web01 kernel: [UFW BLOCK] IN=eth0 OUT= SRC={ip} DST=10.0.0.5 PROTO=TCP DPT=22"
    for m, ip in enumerate(
        ["45.155.205.11"] * 6 + ["193.32.162.87"] * 3 + ["80.94.95.203"] * 2 + ["141.98.11.4"]
    )
)


def demo_probe(seed: int = 42) -> FakeProbe:
    """FakeProbe that looks like a busy little web server."""
    rng = random.Random(seed)
    counters = {"rx": 9182733121, "tx": 2210332981}
    lock = threading.Lock()

    def counter(name: str, low: int, high: int) -> Callable[[], str]:
        def read() -> str:
            with lock:
                counters[name] += rng.randint(low, high)
                return str(counters[name])
        return read

    return FakeProbe(
        commands={
            "top -bn1": _TOP,
            "nproc": "2",
            "free -m": _FREE,
            "df -h": _DF,
            "iostat -d -x 1 2": _IOSTAT,
            "ps aux --sort=-%cpu": _PS,
            "ufw status": "Status: active",
        },
        files={
            "/proc/loadavg": "0.42 0.37 0.31 1/187 30512",
            "/proc/net/dev": _NET_DEV,
            "/sys/class/net/eth0/statistics/rx_bytes": counter("rx", 20_000, 400_000),
            "/sys/class/net/eth0/statistics/tx_bytes": counter("tx", 5_000, 120_000),
            "/sys/class/thermal/thermal_zone0/temp": "41000",
            "/var/log/syslog": _SYSLOG,
            "/var/log/nginx/error.log": _NGINX_ERROR,
            "/var/log/mysql/error.log": _MYSQL_ERROR,
            "/var/log/ufw.log": _UFW_LOG,
        },
        binaries={"ufw"},
    )
