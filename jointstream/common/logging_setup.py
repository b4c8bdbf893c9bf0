"""
Structured Logging Setup

Consistent logging configuration across the link, sampler and API.
Uses JSON format for structured logs in production.
"""

import logging
import sys
import os
from datetime import datetime, timezone
from typing import Any
import json


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    RESERVED = frozenset((
        "name", "msg", "args", "levelname", "levelno", "pathname",
        "filename", "module", "exc_info", "exc_text", "stack_info",
        "lineno", "funcName", "created", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "service",
        "message", "taskName",
    ))

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
            if key not in self.RESERVED:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Set up structured logging for a service.

    Args:
        service_name: Name of the component (e.g., "link", "sampler")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for production, False for dev)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"jointstream.{service_name}")
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Level and format come from JOINTSTREAM_LOG_LEVEL and
    JOINTSTREAM_LOG_FORMAT ("json" or "text").
    """
    log_level = os.environ.get("JOINTSTREAM_LOG_LEVEL", "INFO")
    json_format = os.environ.get("JOINTSTREAM_LOG_FORMAT", "json").lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


def configure_all(log_level: str, json_format: bool) -> None:
    """Re-apply level and format to every logger created so far"""
    os.environ["JOINTSTREAM_LOG_LEVEL"] = log_level
    os.environ["JOINTSTREAM_LOG_FORMAT"] = "json" if json_format else "text"

    for name, existing in list(logging.root.manager.loggerDict.items()):
        if name.startswith("jointstream.") and isinstance(existing, logging.Logger):
            setup_logging(name.split(".", 1)[1], log_level, json_format)


def log_device_read(
    logger: logging.Logger,
    endpoint: str,
    address: int,
    value: Any,
    success: bool = True,
) -> None:
    """Log a register block read"""
    if success:
        logger.debug(
            f"Read {endpoint}@{address} = {value}",
            extra={"endpoint": endpoint, "register": address, "value": value},
        )
    else:
        logger.warning(
            f"Failed to read {endpoint}@{address}: {value}",
            extra={"endpoint": endpoint, "register": address},
        )
