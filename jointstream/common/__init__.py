"""
Common Utilities

Shared modules used across the service:
- config.py - Configuration dataclasses and loader
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- scheduler.py - Interval scheduler for subscriber timers
"""

from .config import (
    AppConfig,
    DeviceEndpoint,
    LoggingSettings,
    SamplingSettings,
    ServerSettings,
    load_config,
)
from .exceptions import (
    JointStreamError,
    ConfigError,
    DeviceError,
    CommunicationError,
    DeviceTimeoutError,
    ReadError,
    DecodeMismatchError,
    CircuitOpenError,
    LinkClosedError,
    WriteDisabledError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    log_device_read,
)
from .scheduler import ScheduledLoop

__all__ = [
    # Config
    "AppConfig",
    "DeviceEndpoint",
    "LoggingSettings",
    "SamplingSettings",
    "ServerSettings",
    "load_config",
    # Exceptions
    "JointStreamError",
    "ConfigError",
    "DeviceError",
    "CommunicationError",
    "DeviceTimeoutError",
    "ReadError",
    "DecodeMismatchError",
    "CircuitOpenError",
    "LinkClosedError",
    "WriteDisabledError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "log_device_read",
    # Scheduling
    "ScheduledLoop",
]
