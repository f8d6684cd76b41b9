"""
Remediation Capabilities

The watchdog never touches the host directly. Everything it can do to the
device goes through this interface, so the decision logic can run against
a recording fake in tests.
"""

from abc import ABC, abstractmethod

from zxping.common.config import NetworkProfile


class Capabilities(ABC):
    """Base class for host action providers"""

    @abstractmethod
    async def apply_network_profile(self, profile: NetworkProfile) -> None:
        """Apply a kernel network parameter profile"""
        pass

    @abstractmethod
    async def clear_page_cache(self) -> None:
        pass

    @abstractmethod
    async def restart_debug_bridge(self) -> None:
        pass

    @abstractmethod
    async def kill_debug_bridge(self) -> None:
        pass

    @abstractmethod
    async def reboot_host(self) -> None:
        """Reboot the device; returns only if the reboot did not happen"""
        pass

    @abstractmethod
    async def truncate_log_file(self) -> None:
        pass
