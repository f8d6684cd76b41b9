"""
Command Mailbox

Control channel for remote commands. A UDP listener decodes fixed ASCII
payloads and drops the command into a single-slot mailbox; the scheduler
takes it on its next tick. A newer command overwrites an unconsumed one.

Wire format (exact datagram contents):
    RESTART_ADBD    -> restart the debug bridge
    KILL_ADBD       -> kill the debug bridge
    RESTART_SERVER  -> reboot the host
    PING            -> no-op

Recognized datagrams are answered with b"OK"; anything else gets no reply.
"""

import asyncio
import threading

from zxping.common.exceptions import ControlChannelError
from zxping.common.logging_setup import get_service_logger
from .state import PendingCommand

logger = get_service_logger("watchdog.mailbox")

ACK_PAYLOAD = b"OK"
PING_PAYLOAD = b"PING"

COMMAND_PAYLOADS: dict[bytes, PendingCommand] = {
    b"RESTART_ADBD": PendingCommand.RESTART_DEBUG_BRIDGE,
    b"KILL_ADBD": PendingCommand.KILL_DEBUG_BRIDGE,
    b"RESTART_SERVER": PendingCommand.RESTART_HOST,
}

MAX_DATAGRAM_SIZE = 64


class CommandMailbox:
    """Single-slot, last-writer-wins command cell"""

    def __init__(self):
        self._lock = threading.Lock()
        self._command = PendingCommand.NONE

    def put(self, command: PendingCommand) -> None:
        with self._lock:
            self._command = command

    def take(self) -> PendingCommand:
        """Return the pending command and empty the slot"""
        with self._lock:
            command = self._command
            self._command = PendingCommand.NONE
        return command

    def peek(self) -> PendingCommand:
        with self._lock:
            return self._command


def decode_payload(payload: bytes) -> tuple[bool, PendingCommand]:
    """
    Map a datagram to a command.

    Returns:
        (recognized, command); PING is recognized with PendingCommand.NONE
    """
    if payload == PING_PAYLOAD:
        return True, PendingCommand.NONE

    command = COMMAND_PAYLOADS.get(payload)
    if command is None:
        return False, PendingCommand.NONE
    return True, command


class ControlChannelProtocol(asyncio.DatagramProtocol):
    """asyncio datagram handler feeding the mailbox"""

    def __init__(self, mailbox: CommandMailbox):
        self.mailbox = mailbox
        self.transport: asyncio.DatagramTransport | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport

    def datagram_received(self, data: bytes, addr: tuple) -> None:
        recognized, command = decode_payload(data[:MAX_DATAGRAM_SIZE])
        if not recognized:
            return

        if command == PendingCommand.NONE:
            logger.info(f"Received ping signal from {addr[0]}:{addr[1]}")
        else:
            logger.info(
                f"Received {data.decode('ascii')} signal from {addr[0]}:{addr[1]}",
                extra={"command": command.value},
            )
            self.mailbox.put(command)

        if self.transport is not None:
            self.transport.sendto(ACK_PAYLOAD, addr)

    def error_received(self, exc: Exception) -> None:
        logger.debug(f"Control channel error: {exc}")


async def open_control_channel(
    mailbox: CommandMailbox,
    host: str = "0.0.0.0",
    port: int = 1300,
) -> asyncio.DatagramTransport:
    """
    Bind the UDP control port.

    Raises:
        ControlChannelError: If the port cannot be bound
    """
    loop = asyncio.get_running_loop()
    try:
        transport, _ = await loop.create_datagram_endpoint(
            lambda: ControlChannelProtocol(mailbox),
            local_addr=(host, port),
        )
    except OSError as e:
        raise ControlChannelError(f"Cannot bind {host}:{port}: {e}", host=host, port=port)

    logger.info(f"Signal listener started on {host}:{port}")
    return transport
