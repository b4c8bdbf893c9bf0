"""
Register Writer Capability

Joint set-point writes are not part of this service. The capability is
kept as an explicit interface so that enabling it is a deliberate change:
the only implementation shipped, DisabledWriter, rejects every write.

Device layout for writes: each float32 is stored little-endian and split
into two little-endian 16-bit words; joints start at register 200, two
registers per joint.
"""

import struct
from typing import Protocol, Sequence

from ..common.exceptions import WriteDisabledError
from ..common.logging_setup import get_service_logger

logger = get_service_logger("device.writer")

JOINT_WRITE_BASE_ADDRESS = 200
REGISTERS_PER_FLOAT = 2


def encode_float_words(value: float) -> list[int]:
    """Split a float32 into the two registers the PLC expects"""
    raw = struct.pack("<f", value)
    return list(struct.unpack("<HH", raw))


def joint_write_plan(
    values: Sequence[float],
    base_address: int = JOINT_WRITE_BASE_ADDRESS,
) -> list[tuple[int, list[int]]]:
    """(address, registers) pairs for writing each joint in order"""
    return [
        (base_address + i * REGISTERS_PER_FLOAT, encode_float_words(value))
        for i, value in enumerate(values)
    ]


class JointWriter(Protocol):
    """Write capability for joint set-points"""

    async def write_joint(self, address: int, value: float) -> bool: ...

    async def write_all_joints(
        self,
        values: Sequence[float],
        base_address: int = JOINT_WRITE_BASE_ADDRESS,
    ) -> bool: ...


class DisabledWriter:
    """JointWriter that refuses every write"""

    enabled = False

    async def write_joint(self, address: int, value: float) -> bool:
        logger.warning(f"Rejected write to register {address}: writes disabled")
        raise WriteDisabledError(address)

    async def write_all_joints(
        self,
        values: Sequence[float],
        base_address: int = JOINT_WRITE_BASE_ADDRESS,
    ) -> bool:
        logger.warning(
            f"Rejected write of {len(values)} joints at {base_address}: writes disabled"
        )
        raise WriteDisabledError(base_address)
