"""
Common Utilities

Shared modules used across the watchdog and system services:
- config.py - Configuration dataclasses and YAML loading
- exceptions.py - Custom exception classes
- logging_setup.py - Service logging setup
- scheduler.py - Elapsed-time interval timers
"""

from .config import (
    Endpoint,
    IntervalSettings,
    NetworkProfile,
    SystemSettings,
    ThresholdSettings,
    WatchdogConfig,
    config_from_dict,
    load_config,
    parse_endpoint,
    resolve_target,
)
from .exceptions import (
    ZxpingError,
    ConfigError,
    ControlChannelError,
    SamplingError,
    CommandError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    configure_console,
    set_log_level,
    LogContext,
)
from .scheduler import IntervalTimer

__all__ = [
    # Config
    "Endpoint",
    "IntervalSettings",
    "NetworkProfile",
    "SystemSettings",
    "ThresholdSettings",
    "WatchdogConfig",
    "config_from_dict",
    "load_config",
    "parse_endpoint",
    "resolve_target",
    # Exceptions
    "ZxpingError",
    "ConfigError",
    "ControlChannelError",
    "SamplingError",
    "CommandError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "configure_console",
    "set_log_level",
    "LogContext",
    # Scheduling
    "IntervalTimer",
]
