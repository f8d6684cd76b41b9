#!/usr/bin/env python3
"""
zxping Watchdog - Main Entry Point

Loads the configuration, validates the target endpoint and runs the
watchdog loop.

Usage:
    zxping                          # Monitor TARGET_IP or 127.0.0.1:80
    zxping 10.0.0.1:443             # Monitor a specific endpoint
    zxping --config watchdog.yaml   # Override thresholds and paths
    zxping --background --isprod    # Detach and stay silent
    zxping --status                 # Query a running watchdog and exit

The target comes from the first positional argument, then the TARGET_IP
environment variable, then the built-in default.
"""

import argparse
import asyncio
import json
import os
import sys

import httpx

from zxping.common.config import WatchdogConfig, load_config, parse_endpoint, resolve_target
from zxping.common.exceptions import ZxpingError
from zxping.common.logging_setup import configure_console, get_service_logger, set_log_level
from zxping.services.system.actions import HostActions
from zxping.services.system.daemon import daemonize
from zxping.services.watchdog.service import WatchdogService

logger = get_service_logger("main")

STATUS_TIMEOUT_S = 5.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zxping",
        description="Network and CPU watchdog",
    )
    parser.add_argument(
        "target",
        nargs="?",
        help="Endpoint to monitor as host:port (default: $TARGET_IP or 127.0.0.1:80)",
    )
    parser.add_argument(
        "--background", "-b",
        action="store_true",
        help="Detach and run in the background",
    )
    parser.add_argument(
        "--isprod",
        action="store_true",
        help="Production mode: no console logging",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to a YAML configuration file",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Print the status of a running watchdog and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    return parser


def build_config(args: argparse.Namespace, environ: dict[str, str]) -> WatchdogConfig:
    """
    Merge file configuration with the command line and environment.

    Raises:
        ConfigError: If the file is invalid or the target endpoint is malformed
    """
    config = load_config(args.config)

    positional = [args.target] if args.target else []
    target = resolve_target(positional, environ, default=config.target)
    config = config.with_target(target)

    # Fail before entering the loop
    parse_endpoint(config.target)
    return config


def query_status(port: int) -> int:
    """Fetch /health from a running watchdog and print it"""
    url = f"http://127.0.0.1:{port}/health"
    try:
        response = httpx.get(url, timeout=STATUS_TIMEOUT_S)
        response.raise_for_status()
    except httpx.HTTPError as e:
        print(f"Watchdog not reachable at {url}: {e}", file=sys.stderr)
        return 1

    print(json.dumps(response.json(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.isprod:
        configure_console(False)
    if args.verbose:
        set_log_level("DEBUG")

    try:
        config = build_config(args, dict(os.environ))
    except ZxpingError as e:
        logger.error(str(e))
        if args.isprod:
            print(e, file=sys.stderr)
        return 1

    if args.status:
        return query_status(config.health_port)

    if args.background:
        daemonize()

    service = WatchdogService(config, HostActions(config.system))

    try:
        asyncio.run(service.run())
    except ZxpingError as e:
        logger.critical(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Stopped by user")

    return 0


if __name__ == "__main__":
    sys.exit(main())
