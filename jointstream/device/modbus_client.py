"""
Async Modbus Client

Wrapper around pymodbus for async Modbus TCP communication with the PLC.
Library failures are translated into the service's exception hierarchy so
the link manager only deals with CommunicationError, DeviceTimeoutError
and ReadError.
"""

import asyncio
from typing import Protocol

from pymodbus.client import AsyncModbusTcpClient
from pymodbus.exceptions import ConnectionException, ModbusException

from ..common.config import DeviceEndpoint
from ..common.exceptions import CommunicationError, DeviceTimeoutError, ReadError
from ..common.logging_setup import get_service_logger

logger = get_service_logger("device.modbus")


class DeviceTransport(Protocol):
    """What the link manager needs from a transport"""

    @property
    def is_connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def read_holding_registers(self, address: int, count: int) -> list[int]: ...

    def close(self) -> None: ...


class ModbusClient:
    """
    Async Modbus TCP client bound to one endpoint and unit id.

    Not safe for concurrent requests; the link manager serializes access.
    """

    def __init__(self, endpoint: DeviceEndpoint):
        self.endpoint = endpoint
        self._client: AsyncModbusTcpClient | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.connected

    async def connect(self) -> None:
        """
        Open the TCP connection.

        Raises:
            DeviceTimeoutError: no answer within endpoint.timeout_s
            CommunicationError: refused, unreachable or unresolvable host
        """
        host, port = self.endpoint.host, self.endpoint.port
        self._client = AsyncModbusTcpClient(
            host=host,
            port=port,
            timeout=self.endpoint.timeout_s,
            retries=0,
            reconnect_delay=0,  # reconnects are owned by the link manager
        )

        try:
            connected = await asyncio.wait_for(
                self._client.connect(),
                timeout=self.endpoint.timeout_s,
            )
        except asyncio.TimeoutError:
            self.close()
            raise DeviceTimeoutError(
                f"Connect to {host}:{port} timed out",
                host=host,
                port=port,
                timeout_s=self.endpoint.timeout_s,
            )
        except (ModbusException, OSError) as e:
            self.close()
            raise CommunicationError(f"Connect to {host}:{port} failed: {e}", host=host, port=port)

        if not connected:
            self.close()
            raise CommunicationError(f"Connection to {host}:{port} refused or unreachable", host=host, port=port)

        logger.debug(f"Connected to Modbus device at {host}:{port} (unit {self.endpoint.unit_id})")

    def close(self) -> None:
        """Close connection"""
        if self._client:
            self._client.close()
            self._client = None
            logger.debug(f"Disconnected from {self.endpoint.address}")

    async def read_holding_registers(self, address: int, count: int) -> list[int]:
        """
        Read `count` consecutive holding registers.

        Returns:
            Raw 16-bit register values

        Raises:
            CommunicationError: not connected or connection dropped
            DeviceTimeoutError: no response within endpoint.timeout_s
            ReadError: Modbus exception response or wrong register count
        """
        host, port = self.endpoint.host, self.endpoint.port
        if not self.is_connected:
            raise CommunicationError(f"Not connected to {host}:{port}", host=host, port=port)

        try:
            response = await asyncio.wait_for(
                self._client.read_holding_registers(
                    address=address,
                    count=count,
                    device_id=self.endpoint.unit_id,
                ),
                timeout=self.endpoint.timeout_s,
            )
        except asyncio.TimeoutError:
            raise DeviceTimeoutError(
                f"Read of {count} registers at {address} timed out",
                host=host,
                port=port,
                timeout_s=self.endpoint.timeout_s,
            )
        except (ConnectionException, OSError) as e:
            raise CommunicationError(f"Connection lost: {e}", host=host, port=port)
        except ModbusException as e:
            raise ReadError(f"Modbus exception: {e}", host=host, port=port, address=address, count=count)

        if response.isError():
            raise ReadError(f"Modbus error: {response}", host=host, port=port, address=address, count=count)
        if len(response.registers) != count:
            raise ReadError(
                f"Expected {count} registers, got {len(response.registers)}",
                host=host,
                port=port,
                address=address,
                count=count,
            )

        return list(response.registers)
