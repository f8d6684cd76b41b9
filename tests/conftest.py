"""
Shared fixtures: recording fakes for everything the watchdog touches.
"""

import pytest

from zxping.common.config import IntervalSettings, WatchdogConfig
from zxping.common.exceptions import CommandError, SamplingError
from zxping.services.system.metrics_collector import CpuSnapshot
from zxping.services.watchdog.capabilities import Capabilities
from zxping.services.watchdog.service import WatchdogService
from zxping.services.watchdog.state import ProbeResult


class RecordingCapabilities(Capabilities):
    """Records every capability call; names in `failing` raise CommandError"""

    def __init__(self):
        self.calls: list[tuple] = []
        self.failing: set[str] = set()

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.failing:
            raise CommandError(f"{name} failed", command=name)

    def count(self, name: str, *args) -> int:
        return sum(1 for call in self.calls if call == (name, *args))

    async def apply_network_profile(self, profile):
        self._record("apply_network_profile", profile)

    async def clear_page_cache(self):
        self._record("clear_page_cache")

    async def restart_debug_bridge(self):
        self._record("restart_debug_bridge")

    async def kill_debug_bridge(self):
        self._record("kill_debug_bridge")

    async def reboot_host(self):
        self._record("reboot_host")

    async def truncate_log_file(self):
        self._record("truncate_log_file")


class FakeCollector:
    """Returns queued snapshots; queued exceptions are raised instead"""

    def __init__(self, items=None):
        self.items = list(items or [])

    def read_cpu_snapshot(self) -> CpuSnapshot:
        if not self.items:
            raise SamplingError("no more samples")
        item = self.items.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeProber:
    def __init__(self, results=None):
        self.results = list(results or [])
        self.calls = 0

    async def probe(self) -> ProbeResult:
        self.calls += 1
        if not self.results:
            return ProbeResult(success=False)
        return self.results.pop(0)


class FakeNotifier:
    def __init__(self):
        self.messages: list[str] = []

    def send(self, message: str) -> bool:
        self.messages.append(message)
        return True


def usage_snapshot(previous: CpuSnapshot, usage_pct: int, ticks: int = 100) -> CpuSnapshot:
    """Next snapshot giving exactly `usage_pct` busy ticks out of `ticks`"""
    busy = ticks * usage_pct // 100
    return CpuSnapshot(
        user=previous.user + busy,
        nice=previous.nice,
        system=previous.system,
        idle=previous.idle + (ticks - busy),
        iowait=previous.iowait,
        irq=previous.irq,
        softirq=previous.softirq,
        steal=previous.steal,
        guest=previous.guest,
        guest_nice=previous.guest_nice,
    )


def usage_series(*usages: int) -> list[CpuSnapshot]:
    snapshots = []
    previous = CpuSnapshot()
    for usage in usages:
        previous = usage_snapshot(previous, usage)
        snapshots.append(previous)
    return snapshots


@pytest.fixture
def config() -> WatchdogConfig:
    return WatchdogConfig(
        target="127.0.0.1:9",
        control_host="127.0.0.1",
        control_port=0,
        health_port=0,
        intervals=IntervalSettings(startup_delay_s=0, tick_s=0.01),
    )


@pytest.fixture
def capabilities() -> RecordingCapabilities:
    return RecordingCapabilities()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def make_service(config, capabilities, notifier):
    """Factory building a WatchdogService on a fixed clock at t=0"""

    def factory(collector=None, prober=None):
        return WatchdogService(
            config,
            capabilities,
            metrics_collector=collector or FakeCollector(),
            prober=prober or FakeProber(),
            notifier=notifier,
            clock=lambda: 0.0,
        )

    return factory
