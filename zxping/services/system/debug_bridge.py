"""
Debug Bridge Manager

Kills and restarts the adbd debug-bridge daemon on request from the control
channel. Processes are found by their command line with psutil.
"""

import asyncio
import os
import subprocess

import psutil

from zxping.common.config import SystemSettings
from zxping.common.logging_setup import get_service_logger
from .shell import spawn_detached

logger = get_service_logger("system.debug_bridge")

RESTART_SETTLE_S = 3.0
KILL_SETTLE_S = 1.0


class DebugBridgeManager:
    """Finds, kills and spawns adbd"""

    def __init__(
        self,
        settings: SystemSettings | None = None,
        restart_settle_s: float = RESTART_SETTLE_S,
        kill_settle_s: float = KILL_SETTLE_S,
    ):
        self.settings = settings or SystemSettings()
        self.restart_settle_s = restart_settle_s
        self.kill_settle_s = kill_settle_s
        self.process: subprocess.Popen | None = None

    def find_processes(self) -> list[psutil.Process]:
        """All processes whose command line mentions the adbd name"""
        own_pid = os.getpid()
        matches = []
        for proc in psutil.process_iter(["pid", "cmdline"]):
            cmdline = proc.info.get("cmdline") or []
            if proc.info["pid"] == own_pid:
                continue
            if any(self.settings.adbd_match in part for part in cmdline):
                matches.append(proc)
        return matches

    def kill_all(self) -> int:
        """SIGKILL every adbd process; returns how many were killed"""
        killed = 0
        for proc in self.find_processes():
            try:
                proc.kill()
                killed += 1
                logger.info(f"Killed adbd process (PID: {proc.pid})")
            except psutil.NoSuchProcess:
                logger.debug(f"adbd process {proc.pid} already gone")
            except psutil.AccessDenied as e:
                logger.warning(f"Not allowed to kill adbd process {proc.pid}: {e}")
        return killed

    async def kill(self) -> None:
        """Kill adbd and give the kernel a moment to reap it"""
        logger.info("Force killing adbd process")
        self.kill_all()
        await asyncio.sleep(self.kill_settle_s)

    async def restart(self) -> None:
        """
        Kill adbd, wait, then start a fresh instance.

        Raises:
            CommandError: If the new adbd cannot be started
        """
        logger.info("Force restarting adbd process")
        self.kill_all()

        await asyncio.sleep(self.restart_settle_s)

        process = spawn_detached([self.settings.adbd_binary])
        self.process = process
        logger.info(f"adbd started (PID: {process.pid})")
