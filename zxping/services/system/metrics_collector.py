"""
System Metrics Collector

Reads the kernel's aggregate CPU accounting from /proc/stat and turns two
snapshots into an instantaneous usage percentage.
"""

from dataclasses import dataclass, fields
from pathlib import Path

from zxping.common.exceptions import SamplingError

PROC_STAT_PATH = "/proc/stat"

# "cpu" label plus user..guest; guest_nice is optional on older kernels
MIN_CPU_FIELDS = 9


@dataclass(frozen=True)
class CpuSnapshot:
    """Cumulative CPU time counters (in USER_HZ ticks)"""
    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0
    guest: int = 0
    guest_nice: int = 0

    @property
    def total(self) -> int:
        return (
            self.user + self.nice + self.system + self.idle + self.iowait
            + self.irq + self.softirq + self.steal + self.guest + self.guest_nice
        )

    @property
    def idle_total(self) -> int:
        return self.idle + self.iowait

    @property
    def active(self) -> int:
        return self.total - self.idle_total

    def to_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _parse_counter(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        return 0
    return value if value >= 0 else 0


def parse_cpu_line(line: str) -> CpuSnapshot:
    """
    Parse the aggregate "cpu " line of /proc/stat.

    Fields that are not integers count as 0; missing trailing columns
    (guest_nice on older kernels) count as 0.

    Raises:
        SamplingError: If the line is not the aggregate line or is too short
    """
    parts = line.split()
    if not parts or parts[0] != "cpu":
        raise SamplingError("Not an aggregate cpu line", source=line.strip()[:40])

    counters = parts[1:]
    if len(counters) < MIN_CPU_FIELDS:
        raise SamplingError(
            f"Expected at least {MIN_CPU_FIELDS} cpu fields, got {len(counters)}",
            source=line.strip()[:40],
        )

    names = [f.name for f in fields(CpuSnapshot)]
    values = {name: _parse_counter(text) for name, text in zip(names, counters)}
    return CpuSnapshot(**values)


def calculate_cpu_usage(previous: CpuSnapshot, current: CpuSnapshot) -> float:
    """
    CPU usage between two snapshots, in percent.

    Returns 0.0 when the total did not advance (first sample, counter wrap).
    """
    total_delta = current.total - previous.total
    if total_delta <= 0:
        return 0.0

    active_delta = current.active - previous.active
    usage = active_delta / total_delta * 100.0
    return min(100.0, max(0.0, usage))


class MetricsCollector:
    """Collects CPU counters from the host"""

    def __init__(self, stat_path: str | Path = PROC_STAT_PATH):
        self.stat_path = Path(stat_path)

    def read_cpu_snapshot(self) -> CpuSnapshot:
        """
        Read the current aggregate CPU counters.

        Raises:
            SamplingError: If the file cannot be read or has no aggregate line
        """
        try:
            with open(self.stat_path, "r") as f:
                content = f.read()
        except OSError as e:
            raise SamplingError(f"Failed to read {self.stat_path}: {e}", source=str(self.stat_path))

        for line in content.splitlines():
            if line.startswith("cpu "):
                return parse_cpu_line(line)

        raise SamplingError(
            f"Cannot find CPU statistics in {self.stat_path}",
            source=str(self.stat_path),
        )
