#!/usr/bin/env python3
"""
Virtual Robot PLC

Serves a moving six-axis robot on a Modbus TCP server, using the same
register layout as the real PLC (holding registers 100-117). Point the
service at it to develop without hardware:

    python -m jointstream.simulator --port 5020
    PLC_HOST=127.0.0.1 PLC_PORT=5020 jointstream

Data served here travels the normal Modbus path, so the service reports
it like any device reading.
"""

import argparse
import asyncio
import math
import time
from dataclasses import dataclass, field

from pymodbus import ModbusDeviceIdentification
from pymodbus.datastore import (
    ModbusDeviceContext,
    ModbusSequentialDataBlock,
    ModbusServerContext,
)
from pymodbus.server import ModbusTcpServer

from .common.logging_setup import get_service_logger
from .sampler.layout import DEFAULT_LAYOUT, RegisterLayout, ToolPosition, encode_joints

logger = get_service_logger("simulator")

HOLDING_REGISTERS_FC = 3


@dataclass
class VirtualRobot:
    """
    Six joints swinging sinusoidally around a home pose.

    Angles are in degrees; amplitude and period are per joint.
    """
    home: tuple[float, ...] = (0.0, -30.0, 30.0, 0.0, 45.0, 0.0)
    amplitude: tuple[float, ...] = (90.0, 20.0, 25.0, 60.0, 30.0, 120.0)
    period_s: tuple[float, ...] = (12.0, 9.0, 7.0, 15.0, 11.0, 6.0)
    tool_position: ToolPosition = field(default_factory=lambda: ToolPosition(0.0, 0.0, 0.0))

    def joints_at(self, t: float) -> list[float]:
        return [
            home + amp * math.sin(2 * math.pi * t / period)
            for home, amp, period in zip(self.home, self.amplitude, self.period_s)
        ]

    def registers_at(self, t: float, layout: RegisterLayout = DEFAULT_LAYOUT) -> list[int]:
        """Register words for the pose at time t"""
        return encode_joints(self.joints_at(t), self.tool_position, layout)


class SimulatorServer:
    """
    Modbus TCP server exposing a VirtualRobot.

    start()/stop() run it in the background of the current event loop;
    run() serves until cancelled.
    """

    def __init__(
        self,
        robot: VirtualRobot,
        host: str = "0.0.0.0",
        port: int = 5020,  # Non-standard port to avoid conflicts
        update_interval_s: float = 0.05,
        layout: RegisterLayout = DEFAULT_LAYOUT,
    ):
        self.robot = robot
        self.host = host
        self.port = port
        self.update_interval_s = update_interval_s
        self.layout = layout

        # Blocks start at 1: address 0 is rejected by newer pymodbus releases
        register_count = layout.base_address + layout.word_count + 10
        device = ModbusDeviceContext(
            di=ModbusSequentialDataBlock(1, [0] * 10),
            co=ModbusSequentialDataBlock(1, [0] * 10),
            hr=ModbusSequentialDataBlock(1, [0] * register_count),
            ir=ModbusSequentialDataBlock(1, [0] * 10),
        )
        # Single context answers every unit id
        self.context = ModbusServerContext(devices=device, single=True)
        self._started = time.monotonic()
        self._server: ModbusTcpServer | None = None
        self._serving: asyncio.Task | None = None
        self._updater: asyncio.Task | None = None

    def update(self) -> list[int]:
        """Write the current pose into the holding registers"""
        words = self.robot.registers_at(time.monotonic() - self._started, self.layout)
        self.context[0].setValues(HOLDING_REGISTERS_FC, self.layout.base_address, words)
        return words

    async def _update_loop(self) -> None:
        while True:
            self.update()
            await asyncio.sleep(self.update_interval_s)

    async def _wait_listening(self, timeout_s: float) -> None:
        host = "127.0.0.1" if self.host in ("", "0.0.0.0") else self.host
        deadline = time.monotonic() + timeout_s
        while True:
            try:
                _, writer = await asyncio.open_connection(host, self.port)
            except OSError:
                if time.monotonic() > deadline or self._serving.done():
                    raise
                await asyncio.sleep(0.02)
                continue
            writer.close()
            await writer.wait_closed()
            return

    async def start(self, timeout_s: float = 5.0) -> None:
        """Begin serving and return once the port accepts connections"""
        identity = ModbusDeviceIdentification()
        identity.VendorName = "Joint Stream"
        identity.ProductCode = "JS-SIM"
        identity.ProductName = "Virtual Robot PLC"
        identity.ModelName = "JS-SIM-1.0"

        self.update()
        self._updater = asyncio.create_task(self._update_loop())

        logger.info(f"Starting virtual robot PLC on {self.host}:{self.port}")
        self._server = ModbusTcpServer(
            self.context,
            identity=identity,
            address=(self.host, self.port),
        )
        self._serving = asyncio.create_task(self._server.serve_forever())
        await self._wait_listening(timeout_s)

    async def stop(self) -> None:
        """Close the listener and stop refreshing registers"""
        if self._updater:
            self._updater.cancel()
            self._updater = None
        if self._server:
            await self._server.shutdown()
            self._server = None
        if self._serving:
            self._serving.cancel()
            await asyncio.gather(self._serving, return_exceptions=True)
            self._serving = None
        logger.info("Virtual robot PLC stopped")

    async def run(self) -> None:
        """Serve until cancelled."""
        await self.start()
        try:
            await self._serving
        finally:
            await self.stop()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Run a virtual robot PLC for testing")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=5020, help="Modbus TCP port (default: 5020)")
    args = parser.parse_args(argv)

    server = SimulatorServer(VirtualRobot(), host=args.host, port=args.port)
    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("Simulator stopped by user")


if __name__ == "__main__":
    main()
