"""
Elapsed-Time Interval Timers

The watchdog runs one control loop and fires each check on its own
interval. A timer is due once "now - last fire >= interval"; firing resets
the reference to the current time, not to the previous scheduled time.
Late checks therefore drift later under load but never queue a backlog of
missed executions.

Usage:
    cpu_timer = IntervalTimer(30.0, "cpu", started_at=time.monotonic())

    while running:
        now = time.monotonic()
        if cpu_timer.due(now):
            check_cpu()
            cpu_timer.mark(now)
"""

import time


class IntervalTimer:
    """
    Monotonic "elapsed since last fire" timer.

    Attributes:
        interval: Seconds between firings
        name: Name for logging/identification
        fire_count: Number of times the timer was marked
    """

    def __init__(
        self,
        interval_seconds: float,
        name: str = "unnamed",
        started_at: float | None = None,
    ):
        if interval_seconds < 0:
            raise ValueError(f"Interval for '{name}' must not be negative")

        self.interval = interval_seconds
        self.name = name

        self._last_fired = time.monotonic() if started_at is None else started_at
        self._fire_count = 0
        self._last_lateness: float = 0

    def due(self, now: float | None = None) -> bool:
        """True once at least one interval has elapsed since the last fire"""
        if now is None:
            now = time.monotonic()
        return now - self._last_fired >= self.interval

    def mark(self, now: float | None = None) -> None:
        """Reset the reference point to now"""
        if now is None:
            now = time.monotonic()
        self._last_lateness = max(0.0, now - self._last_fired - self.interval)
        self._last_fired = now
        self._fire_count += 1

    def reset(self, now: float | None = None) -> None:
        """Restart the interval without counting a fire"""
        self._last_fired = time.monotonic() if now is None else now

    @property
    def last_fired(self) -> float:
        return self._last_fired

    @property
    def fire_count(self) -> int:
        return self._fire_count

    def get_stats(self) -> dict:
        """Get timer statistics for observability."""
        return {
            "name": self.name,
            "interval_s": self.interval,
            "fire_count": self._fire_count,
            "last_lateness_s": round(self._last_lateness, 3),
        }
