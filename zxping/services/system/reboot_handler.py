"""
Reboot Handler

Reboots the host on request from the control channel or after too many
consecutive connectivity failures. A failed reboot is reported to the
caller; the watchdog keeps monitoring and tries again on the next
qualifying check.
"""

import shlex

from zxping.common.config import SystemSettings
from zxping.common.exceptions import CommandError
from zxping.common.logging_setup import get_service_logger
from .shell import run_command

logger = get_service_logger("system.reboot")


class RebootHandler:
    """Runs the configured reboot command"""

    def __init__(self, settings: SystemSettings | None = None):
        self.settings = settings or SystemSettings()
        self._attempts = 0

    @property
    def attempts(self) -> int:
        """Number of reboot attempts made by this process"""
        return self._attempts

    async def reboot(self) -> None:
        """
        Execute the reboot command.

        When the reboot works the process is terminated by the system and
        this call never returns.

        Raises:
            CommandError: If the reboot command cannot run or fails
        """
        self._attempts += 1
        args = shlex.split(self.settings.reboot_command)

        logger.warning(
            "Attempting system reboot",
            extra={"attempt": self._attempts, "command": self.settings.reboot_command},
        )

        result = run_command(args, timeout=self.settings.command_timeout_s)
        if result.returncode != 0:
            raise CommandError(
                f"Reboot exited with status {result.returncode}",
                command=self.settings.reboot_command,
            )
