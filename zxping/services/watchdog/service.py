"""
Watchdog Service

The single control loop of the device watchdog. Every tick it:
- dispatches any command waiting in the control-channel mailbox
- every 30 s samples CPU and feeds the load state machine
- every 60 s probes connectivity and feeds the latency/failure machines
- every 24 h truncates the log file
then sleeps briefly. The loop owns the previous CPU snapshot and all
hysteresis state; only the mailbox is shared with the UDP listener.
"""

import asyncio
import signal
import time
from datetime import datetime, timezone
from typing import Callable

from aiohttp import web

from zxping.common.config import NetworkProfile, WatchdogConfig
from zxping.common.exceptions import CommandError, SamplingError
from zxping.common.logging_setup import LogContext, get_service_logger
from zxping.common.scheduler import IntervalTimer
from zxping.services.system.metrics_collector import (
    CpuSnapshot,
    MetricsCollector,
    calculate_cpu_usage,
)
from .capabilities import Capabilities
from .hysteresis import FailureCounter, LatencyHysteresis, LoadHysteresis
from .mailbox import CommandMailbox, open_control_channel
from .notifier import UdpNotifier
from .prober import ConnectivityProber
from .state import Action, Decision, PendingCommand, ProbeResult

logger = get_service_logger("watchdog")


class WatchdogService:
    """
    Watchdog Service

    Wiring:
    - capabilities: host side effects (HostActions on the device)
    - metrics_collector: CPU counters
    - prober: TCP connectivity check
    - notifier: UDP status messages to the target
    """

    def __init__(
        self,
        config: WatchdogConfig,
        capabilities: Capabilities,
        metrics_collector: MetricsCollector | None = None,
        prober: ConnectivityProber | None = None,
        notifier: UdpNotifier | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.endpoint = config.endpoint
        self.capabilities = capabilities
        self.metrics_collector = metrics_collector or MetricsCollector()
        self.prober = prober or ConnectivityProber(self.endpoint, config.connect_timeout_s)
        self.notifier = notifier or UdpNotifier(
            self.endpoint, config.device_tag, config.notify_timeout_s
        )
        self._clock = clock

        self.mailbox = CommandMailbox()
        self.load = LoadHysteresis(config.thresholds)
        self.latency = LatencyHysteresis(config.thresholds)
        self.failures = FailureCounter(config.thresholds)

        self._prev_snapshot = CpuSnapshot()
        self._last_usage: float | None = None
        self._last_probe: ProbeResult | None = None

        intervals = config.intervals
        now = self._clock()
        self.cpu_timer = IntervalTimer(intervals.cpu_check_s, "cpu", started_at=now)
        self.network_timer = IntervalTimer(intervals.network_check_s, "network", started_at=now)
        self.prune_timer = IntervalTimer(intervals.log_prune_s, "log_prune", started_at=now)

        self._control_transport: asyncio.DatagramTransport | None = None
        self._health_runner: web.AppRunner | None = None

        self._shutdown_event = asyncio.Event()
        self._is_running = False
        self._started_at = now

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Open the control channel and prepare the loop.

        Raises:
            ControlChannelError: If the control port cannot be bound
        """
        logger.info(f"Network monitor started for {self.endpoint}")
        logger.info(
            f"Network check interval: {self.config.intervals.network_check_s:.0f}s, "
            f"reboot after {self.config.thresholds.max_failures} consecutive failures, "
            f"CPU usage threshold: {self.config.thresholds.cpu_usage_pct:.0f}%"
        )

        self._control_transport = await open_control_channel(
            self.mailbox, self.config.control_host, self.config.control_port
        )

        if self.config.health_port:
            await self._start_health_server()

        self.take_initial_snapshot()
        # Intervals count from before the settle delay
        self.reset_timers()

        delay = self.config.intervals.startup_delay_s
        if delay > 0:
            logger.info(f"Waiting {delay:.0f}s before tuning network parameters")
            await self._sleep_or_shutdown(delay)
            if self._shutdown_event.is_set():
                return

        await self._invoke("optimize network", self.capabilities.apply_network_profile, NetworkProfile.OPTIMIZED)

        self._is_running = True

    async def run(self) -> None:
        """Start, then tick until a shutdown signal arrives"""
        self._setup_signal_handlers()
        await self.start()

        try:
            while not self._shutdown_event.is_set():
                await self.tick()
                await self._sleep_or_shutdown(self.config.intervals.tick_s)
        finally:
            await self.stop()

    async def stop(self) -> None:
        logger.info("Stopping watchdog")
        self._is_running = False

        if self._control_transport is not None:
            self._control_transport.close()
            self._control_transport = None

        await self._stop_health_server()
        logger.info("Watchdog stopped")

    def request_shutdown(self) -> None:
        logger.info("Received shutdown signal")
        self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.request_shutdown)

    async def _sleep_or_shutdown(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return

    def reset_timers(self, now: float | None = None) -> None:
        """Start every interval from now"""
        if now is None:
            now = self._clock()
        for timer in (self.cpu_timer, self.network_timer, self.prune_timer):
            timer.reset(now)

    # ------------------------------------------------------------------
    # Scheduler
    # ------------------------------------------------------------------

    async def tick(self, now: float | None = None) -> None:
        """One pass of the control loop"""
        if now is None:
            now = self._clock()

        await self.dispatch_pending_command()

        if self.cpu_timer.due(now):
            await self.check_cpu()
            self.cpu_timer.mark(now)

        if self.network_timer.due(now):
            await self.check_connectivity()
            self.network_timer.mark(now)

        if self.prune_timer.due(now):
            await self._invoke("truncate log file", self.capabilities.truncate_log_file)
            self.prune_timer.mark(now)

    def take_initial_snapshot(self) -> None:
        try:
            self._prev_snapshot = self.metrics_collector.read_cpu_snapshot()
        except SamplingError as e:
            logger.error(f"Failed to get initial CPU stats: {e}")
            self._prev_snapshot = CpuSnapshot()

    async def dispatch_pending_command(self) -> None:
        command = self.mailbox.take()
        if command == PendingCommand.NONE:
            return

        with LogContext(logger.logger, command=command.value):
            if command == PendingCommand.RESTART_DEBUG_BRIDGE:
                if await self._invoke("restart adbd", self.capabilities.restart_debug_bridge):
                    logger.info("adbd force restarted successfully")
                    self.notifier.send("ADBD_FORCE_RESTARTED")
            elif command == PendingCommand.KILL_DEBUG_BRIDGE:
                if await self._invoke("kill adbd", self.capabilities.kill_debug_bridge):
                    logger.info("adbd force killed successfully")
                    self.notifier.send("ADBD_FORCE_KILLED")
            elif command == PendingCommand.RESTART_HOST:
                logger.warning("Reboot requested over control channel")
                await self._reboot()

    async def check_cpu(self) -> float | None:
        """Sample CPU and feed the load machine; None when sampling failed"""
        try:
            snapshot = self.metrics_collector.read_cpu_snapshot()
        except SamplingError as e:
            logger.error(f"Failed to check CPU usage: {e}")
            return None

        usage = calculate_cpu_usage(self._prev_snapshot, snapshot)
        self._prev_snapshot = snapshot
        self._last_usage = usage

        logger.debug(f"CPU usage: {usage:.1f}%")
        await self._execute(self.load.update(usage))
        return usage

    async def check_connectivity(self) -> ProbeResult:
        """Probe the target and feed the latency and failure machines"""
        result = await self.prober.probe()
        self._last_probe = result

        if result.success:
            if result.latency_s is None:
                logger.info(f"Connection to {self.endpoint} successful, but duration not measured")
            self.failures.record_success()
            await self._execute(self.latency.update(result.latency_s))
        else:
            logger.warning(f"Connection to {self.endpoint} failed")
            await self._execute(self.failures.record_failure())

        return result

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _execute(self, decision: Decision) -> None:
        for message in decision.notifications:
            self.notifier.send(message)

        for action in decision.actions:
            if action == Action.THROTTLE:
                await self._invoke("throttle network", self.capabilities.apply_network_profile, NetworkProfile.THROTTLED)
            elif action == Action.RESTORE:
                await self._invoke("restore network", self.capabilities.apply_network_profile, NetworkProfile.NORMAL)
            elif action == Action.CLEAR_CACHE:
                await self._invoke("clear page cache", self.capabilities.clear_page_cache)
            elif action == Action.REBOOT:
                await self._reboot()

    async def _reboot(self) -> None:
        logger.warning("Initiating system reboot")
        if not await self._invoke("reboot", self.capabilities.reboot_host):
            logger.error("Reboot attempt failed, continuing monitoring")

    async def _invoke(self, label: str, func, *args) -> bool:
        """Run one capability; failures are logged and reported as False"""
        try:
            await func(*args)
        except CommandError as e:
            logger.error(f"Failed to {label}: {e}", extra={"command": e.command})
            return False
        return True

    # ------------------------------------------------------------------
    # Health endpoint
    # ------------------------------------------------------------------

    def get_status(self) -> dict:
        """Snapshot of the watchdog state for the health endpoint"""
        probe = self._last_probe
        return {
            "status": "healthy" if self._is_running else "starting",
            "service": "watchdog",
            "target": str(self.endpoint),
            "uptime": int(self._clock() - self._started_at),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "load": self.load.state.to_dict(),
            "latency": self.latency.state.to_dict(),
            "failures": self.failures.state.to_dict(),
            "last_cpu_usage_pct": None if self._last_usage is None else round(self._last_usage, 1),
            "last_probe": None if probe is None else {
                "success": probe.success,
                "latency_ms": None if probe.latency_ms is None else round(probe.latency_ms, 1),
            },
            "pending_command": self.mailbox.peek().value,
            "timers": {
                timer.name: timer.get_stats()
                for timer in (self.cpu_timer, self.network_timer, self.prune_timer)
            },
        }

    async def _start_health_server(self) -> None:
        app = web.Application()
        app.router.add_get("/health", self._health_handler)

        self._health_runner = web.AppRunner(app)
        await self._health_runner.setup()

        site = web.TCPSite(self._health_runner, "127.0.0.1", self.config.health_port)
        try:
            await site.start()
        except OSError as e:
            logger.error(f"Health server disabled, cannot bind port {self.config.health_port}: {e}")
            await self._stop_health_server()
            return

        logger.info(f"Health server started on port {self.config.health_port}")

    async def _stop_health_server(self) -> None:
        if self._health_runner:
            await self._health_runner.cleanup()
            self._health_runner = None

    async def _health_handler(self, request: web.Request) -> web.Response:
        return web.json_response(self.get_status())
