"""
Custom Exception Classes for the Joint Stream service

Hierarchical exception structure shared by the device link, the sampler
and the API layer.
"""


class JointStreamError(Exception):
    """Base exception for all joint stream errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(JointStreamError):
    """Configuration-related errors"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class DeviceError(JointStreamError):
    """PLC communication and data errors"""

    def __init__(
        self,
        message: str,
        host: str | None = None,
        port: int | None = None,
        recoverable: bool = True,
    ):
        self.host = host
        self.port = port
        super().__init__(f"Device Error: {message}", recoverable)


class CommunicationError(DeviceError):
    """Transport refused, unreachable or unresolvable"""


class DeviceTimeoutError(CommunicationError):
    """No response from the PLC within the configured timeout"""

    def __init__(
        self,
        message: str,
        host: str | None = None,
        port: int | None = None,
        timeout_s: float | None = None,
    ):
        self.timeout_s = timeout_s
        super().__init__(message, host, port)


class ReadError(DeviceError):
    """Protocol-level failure while reading registers"""

    def __init__(
        self,
        message: str,
        host: str | None = None,
        port: int | None = None,
        address: int | None = None,
        count: int | None = None,
    ):
        self.address = address
        self.count = count
        super().__init__(message, host, port)


class DecodeMismatchError(DeviceError):
    """Register block length differs from the layout"""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Expected {expected} registers, got {actual}",
            recoverable=True,
        )


class CircuitOpenError(DeviceError):
    """Connect attempts exhausted; waiting for an explicit reconnect"""

    def __init__(self, attempts: int, host: str | None = None, port: int | None = None):
        self.attempts = attempts
        super().__init__(
            f"Connection attempts exhausted ({attempts}), reconnect required",
            host,
            port,
            recoverable=False,
        )


class LinkClosedError(DeviceError):
    """The link was shut down; only an explicit connect reopens it"""

    def __init__(self, host: str | None = None, port: int | None = None):
        super().__init__("PLC link closed", host, port, recoverable=False)


class WriteDisabledError(DeviceError):
    """Register writes are not enabled for this deployment"""

    def __init__(self, address: int | None = None):
        self.address = address
        super().__init__(
            f"Write to register {address} rejected: writes are disabled",
            recoverable=False,
        )
