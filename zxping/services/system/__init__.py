"""
System Services - Host Side Effects

Responsibilities:
- Read CPU counters from /proc/stat
- Apply kernel network parameter profiles and clear the page cache
- Kill and restart the adbd debug bridge
- Reboot the host
- Truncate the watchdog log file
- Detach into the background
"""

from .actions import HostActions
from .metrics_collector import CpuSnapshot, MetricsCollector, calculate_cpu_usage, parse_cpu_line

__all__ = [
    "HostActions",
    "CpuSnapshot",
    "MetricsCollector",
    "calculate_cpu_usage",
    "parse_cpu_line",
]
