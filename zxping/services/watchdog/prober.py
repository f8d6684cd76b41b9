"""
Connectivity Prober

Opens a TCP connection to the target with a bounded timeout and reports
whether it worked and how long it took.
"""

import asyncio
import time

from zxping.common.config import Endpoint
from zxping.common.logging_setup import get_service_logger
from .state import ProbeResult

logger = get_service_logger("watchdog.prober")

CONNECT_TIMEOUT_S = 3.0


class ConnectivityProber:
    """TCP connect check against a validated endpoint"""

    def __init__(self, endpoint: Endpoint, timeout_s: float = CONNECT_TIMEOUT_S):
        self.endpoint = endpoint
        self.timeout_s = timeout_s

    async def probe(self) -> ProbeResult:
        start = time.monotonic()

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.endpoint.host, self.endpoint.port),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(f"TCP connect to {self.endpoint} timed out after {self.timeout_s:.0f}s")
            return ProbeResult(success=False)
        except (OSError, ValueError) as e:
            logger.warning(f"TCP connect to {self.endpoint} failed: {e}")
            return ProbeResult(success=False)

        latency = time.monotonic() - start

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error closing probe connection: {e}")

        logger.debug(f"TCP connect to {self.endpoint} successful, took {latency * 1000:.1f}ms")
        return ProbeResult(success=True, latency_s=latency)
