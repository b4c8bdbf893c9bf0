from __future__ import annotations

import asyncio

import pytest

from jointstream.common.config import DeviceEndpoint
from jointstream.sampler.layout import encode_joints

JOINTS = [10.0, 20.0, 30.0, 40.0, 50.0, 60.0]


class FakeTransport:
    """In-memory stand-in for ModbusClient, driven by a FakePLC"""

    def __init__(self, plc: FakePLC, endpoint: DeviceEndpoint):
        self.plc = plc
        self.endpoint = endpoint
        self.is_connected = False

    async def connect(self) -> None:
        self.plc.connect_calls += 1
        if self.plc.connect_error is not None:
            raise self.plc.connect_error
        self.is_connected = True

    async def read_holding_registers(self, address: int, count: int) -> list[int]:
        plc = self.plc
        plc.read_calls.append((address, count))
        plc.in_flight += 1
        plc.max_in_flight = max(plc.max_in_flight, plc.in_flight)
        try:
            await asyncio.sleep(plc.read_delay)
            if plc.read_error is not None:
                raise plc.read_error
            return list(plc.words)
        finally:
            plc.in_flight -= 1

    def close(self) -> None:
        self.is_connected = False
        self.plc.close_calls += 1


class FakePLC:
    """Shared device state plus call-count probes"""

    def __init__(self, words: list[int] | None = None):
        self.words = words if words is not None else encode_joints(JOINTS)
        self.connect_error: Exception | None = None
        self.read_error: Exception | None = None
        self.read_delay = 0.0
        self.connect_calls = 0
        self.close_calls = 0
        self.read_calls: list[tuple[int, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.transports: list[FakeTransport] = []

    def factory(self, endpoint: DeviceEndpoint) -> FakeTransport:
        transport = FakeTransport(self, endpoint)
        self.transports.append(transport)
        return transport


@pytest.fixture
def plc() -> FakePLC:
    return FakePLC()


@pytest.fixture
def endpoint() -> DeviceEndpoint:
    return DeviceEndpoint(host="127.0.0.1", port=5020, unit_id=1, timeout_s=0.5)


@pytest.fixture
def joints() -> list[float]:
    return list(JOINTS)
