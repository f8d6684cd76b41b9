"""
Background Mode

Detaches the watchdog from its controlling terminal with the classic
double fork. Standard streams are pointed at /dev/null.
"""

import os
import sys

from zxping.common.exceptions import ZxpingError


def daemonize(workdir: str = "/") -> None:
    """
    Turn the current process into a daemon.

    Must be called before the event loop is created. The parent processes
    exit; only the grandchild returns from this function.

    Raises:
        ZxpingError: If a fork fails
    """
    try:
        if os.fork() > 0:
            os._exit(0)
    except OSError as e:
        raise ZxpingError(f"First fork failed: {e}", recoverable=False)

    os.setsid()

    try:
        if os.fork() > 0:
            os._exit(0)
    except OSError as e:
        raise ZxpingError(f"Second fork failed: {e}", recoverable=False)

    os.chdir(workdir)
    os.umask(0o022)

    sys.stdout.flush()
    sys.stderr.flush()

    devnull = os.open(os.devnull, os.O_RDWR)
    for fd in (0, 1, 2):
        os.dup2(devnull, fd)
    if devnull > 2:
        os.close(devnull)
