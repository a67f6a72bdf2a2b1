"""
Collectors for the near-universal Linux tools: CPU, memory, disk and the
process list. No fallback chains here, but each sub-field degrades on its
own so one missing tool never blanks the whole panel.
"""

from __future__ import annotations

from hostpulse.collector.base import FragmentCollector
from hostpulse.metrics import CpuFragment, DiskFragment
from hostpulse.probe import SourceResult, SourceStatus

TOP_PROCESSES = 10


class CpuCollector(FragmentCollector):
    key = "cpu"

    def collect(self) -> CpuFragment:
        loadavg = self._probe.read_file("/proc/loadavg")
        return CpuFragment(
            usage=self._usage(),
            load=loadavg.describe(),
            cores=self._cores(),
        )

    def _usage(self) -> str:
        # top prints one summary line per sample; we only want the CPU one
        result = self._probe.run(["top", "-bn1"])
        if not result.ok:
            return result.describe()
        for line in result.text.splitlines():
            if "Cpu(s)" in line:
                return line.strip()
        return SourceResult(SourceStatus.EMPTY, detail="top -bn1 | grep 'Cpu(s)'").describe()

    def _cores(self) -> str:
        result = self._probe.run(["nproc"])
        return result.text.strip() if result.ok else result.describe()


class MemoryCollector(FragmentCollector):
    key = "memory"

    def collect(self) -> str:
        result = self._probe.run(["free", "-m"])
        return result.describe()


class DiskCollector(FragmentCollector):
    """df for space, iostat for rates.

    `iostat -d -x 1 2` takes two samples a second apart; the first report
    is since-boot averages, so only the second is meaningful. This is the
    one collector that always costs about a second.
    """

    key = "disk"

    def collect(self) -> DiskFragment:
        space = self._probe.run(["df", "-h"])

        io_stats = self._probe.run(["iostat", "-d", "-x", "1", "2"])
        if io_stats.ok:
            # drop the kernel/host banner and the blank line after it
            io_text = "\n".join(io_stats.text.splitlines()[2:])
            if not io_text.strip():
                io_text = SourceResult(SourceStatus.EMPTY, detail=io_stats.detail).describe()
        else:
            io_text = io_stats.describe()

        return DiskFragment(
            space=space.describe(),
            io_stats=io_text,
        )


class ProcessCollector(FragmentCollector):
    key = "processes"

    def collect(self) -> str:
        result = self._probe.run(["ps", "aux", "--sort=-%cpu"])
        if not result.ok:
            return result.describe()
        # header + top N
        return "\n".join(result.text.splitlines()[: TOP_PROCESSES + 1])
