"""
Watchdog State Dataclasses

Data structures shared by the hysteresis state machines and the scheduler.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PendingCommand(str, Enum):
    """Command waiting in the control-channel mailbox"""
    NONE = "none"
    RESTART_DEBUG_BRIDGE = "restart_debug_bridge"
    KILL_DEBUG_BRIDGE = "kill_debug_bridge"
    RESTART_HOST = "restart_host"


class LoadMode(str, Enum):
    NORMAL = "normal"
    ELEVATED = "elevated"


class Action(str, Enum):
    """Remediation requested by a state machine"""
    THROTTLE = "throttle"
    RESTORE = "restore"
    CLEAR_CACHE = "clear_cache"
    REBOOT = "reboot"


@dataclass
class Decision:
    """Output of one state machine step"""
    actions: list[Action] = field(default_factory=list)
    notifications: list[str] = field(default_factory=list)

    def extend(self, other: "Decision") -> None:
        self.actions.extend(other.actions)
        self.notifications.extend(other.notifications)

    def __bool__(self) -> bool:
        return bool(self.actions or self.notifications)


@dataclass
class ProbeResult:
    """Outcome of one connectivity check"""
    success: bool
    latency_s: float | None = None

    @property
    def latency_ms(self) -> float | None:
        if self.latency_s is None:
            return None
        return self.latency_s * 1000.0


@dataclass
class LoadState:
    """CPU load hysteresis state"""
    mode: LoadMode = LoadMode.NORMAL
    elevated_streak: int = 0
    recovery_streak: int = 0

    def reset(self) -> None:
        self.mode = LoadMode.NORMAL
        self.elevated_streak = 0
        self.recovery_streak = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "elevated_streak": self.elevated_streak,
            "recovery_streak": self.recovery_streak,
        }


@dataclass
class LatencyState:
    """Consecutive high-latency probe counter (uncapped)"""
    high_streak: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"high_streak": self.high_streak}


@dataclass
class FailureState:
    """Consecutive failed probe counter"""
    consecutive_failures: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"consecutive_failures": self.consecutive_failures}
