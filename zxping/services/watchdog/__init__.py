"""
Watchdog Service - Adaptive Decision Engine

Responsibilities:
- Poll the UDP control-channel mailbox every tick
- Sample CPU load every 30 seconds (load hysteresis)
- Probe connectivity every 60 seconds (latency hysteresis, reboot trigger)
- Truncate the log file once a day
"""

from .capabilities import Capabilities
from .service import WatchdogService

__all__ = ["Capabilities", "WatchdogService"]
