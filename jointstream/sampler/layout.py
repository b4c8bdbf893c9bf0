"""
Register Block Layout

The PLC exposes the robot state as 18 holding registers starting at 100.
Each register arrives as a 16-bit word; laid end to end big-endian they
form a 36-byte buffer holding little-endian float32 values:

    bytes  0-23   joint1..joint6 (degrees)
    bytes 24-35   tool position x, y, z (reserved, not part of a measurement)
"""

import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from ..common.exceptions import DecodeMismatchError


@dataclass(frozen=True)
class RegisterLayout:
    """Location and size of the joint register block"""
    base_address: int = 100
    word_count: int = 18
    joint_count: int = 6
    tool_position_offset: int = 24

    @property
    def byte_length(self) -> int:
        return self.word_count * 2


DEFAULT_LAYOUT = RegisterLayout()


def format_timestamp(timestamp: datetime) -> str:
    """UTC, millisecond precision, Z suffix (2024-05-01T12:00:00.123Z)"""
    utc = timestamp.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class JointMeasurement:
    """Six decoded joint angles from one register block"""
    joint1: float
    joint2: float
    joint3: float
    joint4: float
    joint5: float
    joint6: float
    timestamp: datetime
    is_mock_data: bool = False

    @property
    def joints(self) -> tuple[float, ...]:
        return (self.joint1, self.joint2, self.joint3, self.joint4, self.joint5, self.joint6)

    def to_dict(self) -> dict:
        """Wire payload for viewers"""
        return {
            "joint1": self.joint1,
            "joint2": self.joint2,
            "joint3": self.joint3,
            "joint4": self.joint4,
            "joint5": self.joint5,
            "joint6": self.joint6,
            "timestamp": format_timestamp(self.timestamp),
            "isMockData": self.is_mock_data,
        }


@dataclass(frozen=True)
class ToolPosition:
    """Cartesian tool position carried in the reserved bytes"""
    x: float
    y: float
    z: float


def words_to_bytes(words: Sequence[int]) -> bytes:
    """Lay 16-bit register words end to end, each big-endian"""
    return struct.pack(f">{len(words)}H", *words)


def bytes_to_words(raw: bytes) -> list[int]:
    return list(struct.unpack(f">{len(raw) // 2}H", raw))


def _check_length(words: Sequence[int], layout: RegisterLayout) -> None:
    if len(words) != layout.word_count:
        raise DecodeMismatchError(layout.word_count, len(words))


def decode_joints(words: Sequence[int], layout: RegisterLayout = DEFAULT_LAYOUT) -> tuple[float, ...]:
    """
    Decode the joint angles from a register block.

    Pure and deterministic: the same words always give the same floats.

    Raises:
        DecodeMismatchError: block length differs from layout.word_count
    """
    _check_length(words, layout)
    raw = words_to_bytes(words)
    return struct.unpack_from(f"<{layout.joint_count}f", raw, 0)


def decode_block(
    words: Sequence[int],
    layout: RegisterLayout = DEFAULT_LAYOUT,
    timestamp: datetime | None = None,
) -> JointMeasurement:
    """Build a JointMeasurement from a complete register block"""
    joints = decode_joints(words, layout)
    return JointMeasurement(
        *joints,
        timestamp=timestamp or datetime.now(timezone.utc),
        is_mock_data=False,
    )


def decode_tool_position(words: Sequence[int], layout: RegisterLayout = DEFAULT_LAYOUT) -> ToolPosition:
    """Decode the reserved x, y, z floats (bytes 24-35)"""
    _check_length(words, layout)
    raw = words_to_bytes(words)
    x, y, z = struct.unpack_from("<3f", raw, layout.tool_position_offset)
    return ToolPosition(x, y, z)


def encode_joints(
    joints: Sequence[float],
    tool_position: ToolPosition | None = None,
    layout: RegisterLayout = DEFAULT_LAYOUT,
) -> list[int]:
    """Inverse of decode_block: the register words the PLC would serve"""
    if len(joints) != layout.joint_count:
        raise ValueError(f"Expected {layout.joint_count} joints, got {len(joints)}")

    raw = bytearray(layout.byte_length)
    struct.pack_into(f"<{layout.joint_count}f", raw, 0, *joints)
    if tool_position is not None:
        struct.pack_into(
            "<3f", raw, layout.tool_position_offset,
            tool_position.x, tool_position.y, tool_position.z,
        )
    return bytes_to_words(bytes(raw))
