"""
PLC Link Manager

Owns the single Modbus session to the PLC:
- Idempotent connect with a bounded number of failed attempts
- Guarded register reads, one exchange in flight at a time
- Connected/disconnected state with status notifications
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from ..common.config import DeviceEndpoint
from ..common.exceptions import CircuitOpenError, CommunicationError, DeviceError, LinkClosedError
from ..common.logging_setup import get_service_logger, log_device_read
from .modbus_client import DeviceTransport, ModbusClient

logger = get_service_logger("device.link")

MAX_CONNECTION_ATTEMPTS = 5


class LinkState(str, Enum):
    """Link lifecycle states"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class LinkStatus:
    """Status notification payload"""
    connected: bool
    message: str

    def to_dict(self) -> dict:
        return {"connected": self.connected, "message": self.message}


StatusListener = Callable[[LinkStatus], None]
TransportFactory = Callable[[DeviceEndpoint], DeviceTransport]


class LinkManager:
    """
    Supervises the connection to one PLC endpoint.

    All device-touching work (connect, read, close) is serialized through
    one asyncio.Lock because the Modbus session cannot multiplex requests.
    After max_attempts consecutive failed connects, ensure_connected()
    stops trying until an explicit connect() succeeds.
    """

    def __init__(
        self,
        endpoint: DeviceEndpoint,
        max_attempts: int = MAX_CONNECTION_ATTEMPTS,
        transport_factory: TransportFactory = ModbusClient,
    ):
        self.endpoint = endpoint
        self.max_attempts = max_attempts
        self._transport_factory = transport_factory

        self._transport: DeviceTransport | None = None
        self._lock = asyncio.Lock()
        self._listeners: list[StatusListener] = []

        self._state = LinkState.DISCONNECTED
        self._attempt_count = 0
        self._closed = False
        self._last_error: str | None = None
        self._last_read_at: datetime | None = None
        self._read_count = 0

    @property
    def connected(self) -> bool:
        return self._state == LinkState.CONNECTED

    @property
    def attempt_count(self) -> int:
        return self._attempt_count

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def closed(self) -> bool:
        """True after close() until the next explicit connect()"""
        return self._closed

    @property
    def circuit_open(self) -> bool:
        return not self.connected and self._attempt_count >= self.max_attempts

    # ------------------------------------------------------------------
    # Status notifications
    # ------------------------------------------------------------------

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status callback; returns a function that removes it"""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def status(self) -> LinkStatus:
        if self.connected:
            return LinkStatus(True, "PLC connected")
        if self._closed:
            return LinkStatus(False, "PLC connection closed")
        if self.circuit_open:
            return LinkStatus(False, "PLC unreachable: connection attempts exhausted")
        return LinkStatus(False, "PLC not connected")

    def _notify(self, status: LinkStatus) -> None:
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Status listener error: {e}")

    def _set_state(self, state: LinkState, message: str | None = None) -> None:
        self._state = state
        if state == LinkState.CONNECTING:
            return
        self._notify(LinkStatus(state == LinkState.CONNECTED, message or self.status().message))

    # ------------------------------------------------------------------
    # Public operations (each takes the session lock)
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """
        Open a fresh session, replacing any previous one.

        Always attempts, even past the attempt cap; this is the explicit
        trigger that resets the counter.
        Also reopens a link that was closed.

        Raises:
            CommunicationError / DeviceTimeoutError on failure
        """
        async with self._lock:
            self._closed = False
            return await self._connect()

    async def ensure_connected(self) -> bool:
        """True when connected, attempting a connect only below the cap"""
        async with self._lock:
            return await self._ensure_connected()

    async def read_registers(self, base_address: int, count: int) -> list[int]:
        """Read holding registers on the current session (no reconnect)"""
        async with self._lock:
            return await self._read_registers(base_address, count)

    async def fetch(self, base_address: int, count: int) -> list[int]:
        """
        Ensure a session and read, as one exclusive device transaction.

        Raises:
            CircuitOpenError: attempt cap reached, no connect was tried
            LinkClosedError: close() was called, no connect was tried
            CommunicationError / DeviceTimeoutError / ReadError otherwise
        """
        async with self._lock:
            if self._closed:
                raise LinkClosedError(host=self.endpoint.host, port=self.endpoint.port)
            if not self.connected:
                if self.circuit_open:
                    raise CircuitOpenError(
                        self._attempt_count,
                        host=self.endpoint.host,
                        port=self.endpoint.port,
                    )
                logger.info("PLC not connected, attempting reconnect")
                await self._connect()
            return await self._read_registers(base_address, count)

    async def close(self) -> None:
        """Close the session, waiting for any in-flight exchange"""
        async with self._lock:
            self._closed = True
            was_connected = self.connected
            self._close_transport()
            if was_connected:
                self._set_state(LinkState.DISCONNECTED, "PLC connection closed")
            else:
                self._state = LinkState.DISCONNECTED
            logger.info("Modbus connection closed")

    def snapshot(self) -> dict:
        """Current link state; no side effects"""
        return {
            "connected": self.connected,
            "state": self._state.value,
            "closed": self._closed,
            "connection_attempts": self._attempt_count,
            "max_attempts": self.max_attempts,
            "endpoint": self.endpoint.address,
            "unit_id": self.endpoint.unit_id,
            "last_error": self._last_error,
            "last_read_at": self._last_read_at.isoformat() if self._last_read_at else None,
            "read_count": self._read_count,
        }

    # ------------------------------------------------------------------
    # Lock-held internals
    # ------------------------------------------------------------------

    async def _connect(self) -> bool:
        self._close_transport()
        self._set_state(LinkState.CONNECTING)

        transport = self._transport_factory(self.endpoint)
        try:
            await transport.connect()
        except DeviceError as e:
            transport.close()
            self._attempt_count += 1
            self._last_error = e.message
            logger.error(
                f"PLC connection failed (attempt {self._attempt_count}/{self.max_attempts}): {e.message}",
                extra={"endpoint": self.endpoint.address, "attempt": self._attempt_count},
            )
            self._set_state(LinkState.DISCONNECTED, f"PLC connection failed: {e.message}")
            raise

        self._transport = transport
        self._attempt_count = 0
        self._last_error = None
        logger.info(f"Connected to PLC at {self.endpoint.address}")
        self._set_state(LinkState.CONNECTED, "PLC connected")
        return True

    async def _ensure_connected(self) -> bool:
        if self.connected:
            return True

        if self._closed:
            return False

        if self._attempt_count >= self.max_attempts:
            logger.debug(
                f"PLC connection attempts exhausted ({self._attempt_count}), not retrying"
            )
            return False

        logger.info("PLC not connected, attempting reconnect")
        try:
            return await self._connect()
        except DeviceError:
            return False

    async def _read_registers(self, base_address: int, count: int) -> list[int]:
        if not self.connected or self._transport is None:
            raise CommunicationError(
                f"Not connected to {self.endpoint.address}",
                host=self.endpoint.host,
                port=self.endpoint.port,
            )

        try:
            registers = await self._transport.read_holding_registers(base_address, count)
        except DeviceError as e:
            self._last_error = e.message
            log_device_read(logger, self.endpoint.address, base_address, e.message, success=False)
            self._close_transport()
            self._set_state(LinkState.DISCONNECTED, f"PLC read failed: {e.message}")
            raise

        self._read_count += 1
        self._last_read_at = datetime.now(timezone.utc)
        log_device_read(logger, self.endpoint.address, base_address, registers)
        return registers

    def _close_transport(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None
