"""
Host Actions

Concrete implementation of the watchdog's capability interface for the
real device: network profiles, page cache, adbd, reboot and log pruning.
"""

from zxping.common.config import NetworkProfile, SystemSettings
from zxping.services.watchdog.capabilities import Capabilities
from .debug_bridge import DebugBridgeManager
from .log_pruner import LogPruner
from .network_tuner import NetworkTuner
from .reboot_handler import RebootHandler


class HostActions(Capabilities):
    """
    Runs remediation actions on the host.

    Every method is a coroutine. Failures are raised as CommandError and
    logged by the watchdog; partial profile failures are logged here.
    """

    def __init__(self, settings: SystemSettings | None = None):
        self.settings = settings or SystemSettings()

        self.network_tuner = NetworkTuner(self.settings)
        self.debug_bridge = DebugBridgeManager(self.settings)
        self.reboot_handler = RebootHandler(self.settings)
        self.log_pruner = LogPruner(self.settings.log_file)

    async def apply_network_profile(self, profile: NetworkProfile) -> None:
        self.network_tuner.apply_profile(profile)

    async def clear_page_cache(self) -> None:
        self.network_tuner.clear_page_cache()

    async def restart_debug_bridge(self) -> None:
        await self.debug_bridge.restart()

    async def kill_debug_bridge(self) -> None:
        await self.debug_bridge.kill()

    async def reboot_host(self) -> None:
        await self.reboot_handler.reboot()

    async def truncate_log_file(self) -> None:
        self.log_pruner.truncate()
