"""
Log Pruner

The watchdog's own log file lives on a small flash partition and is
emptied once a day.
"""

from pathlib import Path

from zxping.common.exceptions import CommandError
from zxping.common.logging_setup import get_service_logger

logger = get_service_logger("system.log_pruner")


class LogPruner:
    def __init__(self, log_file: str | Path):
        self.log_file = Path(log_file)

    def truncate(self) -> None:
        """
        Empty the log file, creating it if needed.

        Raises:
            CommandError: If the file cannot be written
        """
        try:
            self.log_file.write_text("")
        except OSError as e:
            raise CommandError(f"Failed to clear {self.log_file.name}: {e}", command=str(self.log_file))

        logger.info(f"{self.log_file.name} cleared")
