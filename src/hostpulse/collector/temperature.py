"""Temperature: lm-sensors if installed, else raw sysfs readings."""

from __future__ import annotations

from typing import Optional

from hostpulse.collector.base import FragmentCollector, first_available

# millidegree files exposed by the thermal and hwmon subsystems
SYSFS_TEMP_GLOBS = (
    "/sys/class/thermal/thermal_zone*/temp",
    "/sys/class/hwmon/hwmon*/temp*_input",
)

NO_SENSORS = (
    "Temperature sensors not found. Install lm-sensors package with: "
    "sudo apt-get install lm-sensors"
)


class TemperatureCollector(FragmentCollector):
    key = "temperature"

    def collect(self) -> str:
        return first_available(self._from_sensors, self._from_sysfs) or NO_SENSORS

    def _from_sensors(self) -> Optional[str]:
        if not self._probe.which("sensors"):
            return None
        result = self._probe.run(["sensors"])
        return result.text if result.ok else None

    def _from_sysfs(self) -> Optional[str]:
        lines = []
        for pattern in SYSFS_TEMP_GLOBS:
            for path in self._probe.glob(pattern):
                result = self._probe.read_file(path)
                if result.ok:
                    lines.append(f"{path} : {result.text.strip()}")
        return "\n".join(lines) or None
