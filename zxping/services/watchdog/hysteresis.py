"""
Hysteresis State Machines

Debounce noisy samples into remediation decisions:
- LoadHysteresis: CPU usage -> throttle / restore + clear cache
- LatencyHysteresis: probe latency -> throttle / restore
- FailureCounter: failed probes -> reboot

The machines are pure: they update their own state and return a Decision.
The scheduler sends the notifications and runs the actions.
"""

from zxping.common.config import ThresholdSettings
from zxping.common.logging_setup import get_service_logger
from .state import Action, Decision, FailureState, LatencyState, LoadMode, LoadState

logger = get_service_logger("watchdog.hysteresis")


class LoadHysteresis:
    """
    CPU load state machine.

    Transitions:
    1. Normal, usage > threshold -> Elevated with streak 1, notify HIGH_LOAD_ENTER
    2. Elevated, usage > threshold -> streak + 1, notify HIGH_LOAD;
       in either case throttle when the streak reaches the trigger exactly
    3. Elevated, usage <= threshold -> recovery + 1, notify HIGH_LOAD_EXIT;
       after enough recoveries reset to Normal, restore and clear cache
    4. Normal, usage <= threshold -> nothing
    """

    def __init__(self, thresholds: ThresholdSettings | None = None):
        self.thresholds = thresholds or ThresholdSettings()
        self.state = LoadState()

    def update(self, usage: float) -> Decision:
        decision = Decision()
        state = self.state
        threshold = self.thresholds.cpu_usage_pct

        if usage > threshold:
            if state.mode == LoadMode.NORMAL:
                state.mode = LoadMode.ELEVATED
                state.elevated_streak = 1
                logger.warning(f"High CPU usage detected: {usage:.1f}%, entering high load mode")
                decision.notifications.append(f"HIGH_LOAD_ENTER: CPU={usage:.1f}%")
            else:
                state.elevated_streak += 1
                logger.info(f"High load mode active - CPU usage: {usage:.1f}%")
                decision.notifications.append(f"HIGH_LOAD: CPU={usage:.1f}%")
            if state.elevated_streak == self.thresholds.load_streak:
                logger.warning(
                    f"CPU above {threshold:.0f}% for {state.elevated_streak} checks, throttling network"
                )
                decision.actions.append(Action.THROTTLE)
            state.recovery_streak = 0
            return decision

        if state.mode == LoadMode.NORMAL:
            return decision

        state.recovery_streak += 1
        logger.info(f"CPU usage normalized: {usage:.1f}%, returning to normal mode")

        restore = state.recovery_streak >= self.thresholds.recovery_streak
        if restore:
            state.reset()

        decision.notifications.append(f"HIGH_LOAD_EXIT: CPU={usage:.1f}%")
        if restore:
            decision.actions.extend([Action.RESTORE, Action.CLEAR_CACHE])

        return decision


class LatencyHysteresis:
    """
    Connection latency state machine.

    The streak is not capped. Restore fires only when a normal sample
    arrives while the streak equals the trigger value exactly, so a streak
    that grew past the trigger is reset without restoring.
    """

    def __init__(self, thresholds: ThresholdSettings | None = None):
        self.thresholds = thresholds or ThresholdSettings()
        self.state = LatencyState()

    def update(self, latency_s: float | None) -> Decision:
        decision = Decision()
        state = self.state
        trigger = self.thresholds.high_latency_streak

        if latency_s is None:
            # Connected but no timing: treat as a normal sample without restore
            state.high_streak = 0
            return decision

        latency_ms = latency_s * 1000.0
        threshold_ms = self.thresholds.high_latency_ms

        if latency_ms > threshold_ms:
            state.high_streak += 1
            logger.warning(
                f"High latency detected: {latency_ms:.0f}ms (> {threshold_ms:.0f}ms), "
                f"count {state.high_streak}/{trigger}"
            )
            if state.high_streak == trigger:
                logger.warning(f"{trigger} consecutive high latency connections detected")
                decision.actions.append(Action.THROTTLE)
            return decision

        if state.high_streak == trigger:
            decision.actions.append(Action.RESTORE)
        state.high_streak = 0
        return decision


class FailureCounter:
    """
    Consecutive probe failure counter.

    The count is not reset after a reboot request: if the reboot does not
    take the process down, every further failure asks again.
    """

    def __init__(self, thresholds: ThresholdSettings | None = None):
        self.thresholds = thresholds or ThresholdSettings()
        self.state = FailureState()

    def record_success(self) -> None:
        self.state.consecutive_failures = 0

    def record_failure(self) -> Decision:
        decision = Decision()
        self.state.consecutive_failures += 1
        limit = self.thresholds.max_failures

        logger.warning(f"Failure count: {self.state.consecutive_failures}/{limit}")

        if self.state.consecutive_failures >= limit:
            logger.critical(f"Critical: {self.state.consecutive_failures} consecutive failures detected")
            decision.actions.append(Action.REBOOT)

        return decision
