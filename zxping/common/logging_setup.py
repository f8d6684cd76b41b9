"""
Structured Logging Setup

Consistent logging configuration across the watchdog services.
Text format on the console by default, JSON when ZXPING_LOG_FORMAT=json.
Production mode drops console output entirely.
"""

import logging
import sys
import os
from datetime import datetime, timezone
from typing import Any
import json


_RESERVED_ATTRS = (
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "service",
    "message", "taskName",
)

# Set by configure_console() before services create their loggers
_console_enabled = True


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def configure_console(enabled: bool) -> None:
    """
    Enable or suppress console output for every zxping logger.

    Loggers created before the call are reconfigured in place.
    """
    global _console_enabled
    _console_enabled = enabled

    manager = logging.Logger.manager
    for name in list(manager.loggerDict):
        if name.startswith("zxping."):
            logger = logging.getLogger(name)
            if logger.handlers:
                level = logging.getLevelName(logger.level)
                json_format = any(
                    isinstance(h.formatter, JsonFormatter) for h in logger.handlers
                )
                setup_logging(name[len("zxping."):], level, json_format)


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = False,
    console: bool | None = None,
) -> logging.Logger:
    """
    Set up logging for a service.

    Args:
        service_name: Name of the service (e.g., "watchdog", "system.reboot")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format instead of plain text
        console: Write to stdout; None follows configure_console()

    Returns:
        Configured logger instance
    """
    if console is None:
        console = _console_enabled

    numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)

    logger = logging.getLogger(f"zxping.{service_name}")
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if console:
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(numeric_level)

        if json_format:
            formatter = JsonFormatter()
        else:
            formatter = logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        handler.setFormatter(formatter)
    else:
        handler = logging.NullHandler()

    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Args:
        service_name: Name of the service

    Returns:
        Logger adapter with service name in all logs
    """
    log_level = os.environ.get("ZXPING_LOG_LEVEL", "INFO")
    json_format = os.environ.get("ZXPING_LOG_FORMAT", "text").lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


def set_log_level(log_level: str) -> None:
    """Change the level of every zxping logger (e.g. for --verbose)"""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    manager = logging.Logger.manager
    for name in list(manager.loggerDict):
        if name.startswith("zxping."):
            logger = logging.getLogger(name)
            logger.setLevel(numeric_level)
            for handler in logger.handlers:
                handler.setLevel(numeric_level)


class LogContext:
    """
    Context manager for adding temporary context to logs.

    Usage:
        with LogContext(logger, command="RESTART_ADBD"):
            logger.info("Dispatching command")
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        self.logger = logger
        self.context = context
        self._original_factory = None

    def __enter__(self):
        self._original_factory = logging.getLogRecordFactory()

        def record_factory(*args, **kwargs):
            record = self._original_factory(*args, **kwargs)
            for key, value in self.context.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self._original_factory)
        return False
