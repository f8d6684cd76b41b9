"""
Custom Exception Classes for the zxping watchdog

Hierarchical exception structure shared by the watchdog and system services.
Fatal errors stop the process before the scheduler starts; recoverable ones
are logged and the loop continues.
"""


class ZxpingError(Exception):
    """Base exception for all zxping errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(ZxpingError):
    """Configuration-related errors (target endpoint, YAML file)"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class ControlChannelError(ZxpingError):
    """UDP control channel could not be opened"""

    def __init__(self, message: str, host: str | None = None, port: int | None = None):
        self.host = host
        self.port = port
        super().__init__(f"Control Channel Error: {message}", recoverable=False)


class SamplingError(ZxpingError):
    """CPU counters could not be read or parsed"""

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(f"Sampling Error: {message}", recoverable=True)


class CommandError(ZxpingError):
    """External command invocation failed"""

    def __init__(self, message: str, command: str | None = None):
        self.command = command
        super().__init__(f"Command Error: {message}", recoverable=True)
