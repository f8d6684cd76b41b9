"""
Shell Command Runner

Thin wrapper around subprocess used by every host capability. Commands run
inline and block the caller until they finish or time out.
"""

import subprocess

from zxping.common.exceptions import CommandError
from zxping.common.logging_setup import get_service_logger

logger = get_service_logger("system.shell")

DEFAULT_TIMEOUT_S = 30.0


def run_shell(command: str, timeout: float = DEFAULT_TIMEOUT_S) -> subprocess.CompletedProcess:
    """
    Run a command line through `sh -c`.

    A non-zero exit status is logged but not raised; the caller decides
    whether it matters.

    Raises:
        CommandError: If the shell cannot be started or the command times out
    """
    try:
        result = subprocess.run(
            ["sh", "-c", command],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise CommandError(f"Timeout after {timeout:.0f}s", command=command)
    except OSError as e:
        raise CommandError(f"Cannot run command: {e}", command=command)

    if result.returncode != 0:
        logger.debug(
            f"Command exited with {result.returncode}: {command}",
            extra={"command": command, "stderr": result.stderr.strip()},
        )

    return result


def run_command(
    args: list[str],
    timeout: float = DEFAULT_TIMEOUT_S,
) -> subprocess.CompletedProcess:
    """
    Run an executable directly (no shell).

    Raises:
        CommandError: If the executable is missing, cannot start or times out
    """
    command = " ".join(args)

    try:
        return subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise CommandError(f"Timeout after {timeout:.0f}s", command=command)
    except FileNotFoundError:
        raise CommandError("Executable not found", command=command)
    except OSError as e:
        raise CommandError(f"Cannot run command: {e}", command=command)


def spawn_detached(args: list[str]) -> subprocess.Popen:
    """
    Start a long-running daemon in its own session and return at once.

    Output is discarded and the child is not waited on.

    Raises:
        CommandError: If the executable is missing or cannot start
    """
    command = " ".join(args)
    try:
        return subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except FileNotFoundError:
        raise CommandError("Executable not found", command=command)
    except OSError as e:
        raise CommandError(f"Cannot start process: {e}", command=command)
