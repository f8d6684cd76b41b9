"""
UDP Notifier

Best-effort status notifications to the monitoring endpoint. Each message
goes out from a fresh ephemeral socket; failures are logged, never retried.
"""

import socket

from zxping.common.config import Endpoint
from zxping.common.logging_setup import get_service_logger

logger = get_service_logger("watchdog.notifier")

NOTIFY_TIMEOUT_S = 2.0


class UdpNotifier:
    """Sends "[tag] message" datagrams to the target"""

    def __init__(self, endpoint: Endpoint, device_tag: str = "zxic", timeout_s: float = NOTIFY_TIMEOUT_S):
        self.endpoint = endpoint
        self.device_tag = device_tag
        self.timeout_s = timeout_s

    def format_message(self, message: str) -> bytes:
        return f"[{self.device_tag}] {message}".encode("ascii", errors="replace")

    def send(self, message: str) -> bool:
        """Send one notification; returns False if it could not be sent"""
        payload = self.format_message(message)

        try:
            infos = socket.getaddrinfo(
                self.endpoint.host, self.endpoint.port, type=socket.SOCK_DGRAM
            )
            family, socktype, proto, _, sockaddr = infos[0]
            with socket.socket(family, socktype, proto) as sock:
                sock.settimeout(self.timeout_s)
                sock.sendto(payload, sockaddr)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to send UDP notification: {e}")
            return False

        logger.debug(f"UDP notification sent: {payload.decode('ascii')}")
        return True
