import struct
from datetime import datetime, timedelta, timezone

import pytest

from jointstream.common.exceptions import DecodeMismatchError
from jointstream.sampler.layout import (
    DEFAULT_LAYOUT,
    ToolPosition,
    decode_block,
    decode_joints,
    decode_tool_position,
    encode_joints,
    format_timestamp,
)


def test_first_joint_45_degrees():
    # 45.0f little-endian bytes 00 00 34 42, read back as big-endian words
    words = [0x0000, 0x3442] + [0] * 16

    measurement = decode_block(words)

    assert measurement.joint1 == 45.0
    assert measurement.joints[1:] == (0.0, 0.0, 0.0, 0.0, 0.0)
    assert measurement.is_mock_data is False


def test_word_to_byte_mapping_matches_little_endian_floats():
    raw = struct.pack("<6f", 1.5, -2.25, 3.0, 0.0, 90.0, -180.0) + bytes(12)
    words = [int.from_bytes(raw[i:i + 2], "big") for i in range(0, 36, 2)]

    assert decode_joints(words) == (1.5, -2.25, 3.0, 0.0, 90.0, -180.0)


def test_decode_is_deterministic():
    words = [(i * 7919) & 0xFFFF for i in range(18)]

    first = decode_joints(words)
    decode_joints([0x1234] * 18)
    second = decode_joints(words)

    assert first == second


def test_round_trip_known_floats():
    joints = [12.5, -90.25, 0.0, 179.5, -45.125, 3.0]

    assert list(decode_joints(encode_joints(joints))) == joints


@pytest.mark.parametrize("length", [0, 17, 19, 36])
def test_wrong_block_length_is_rejected(length):
    with pytest.raises(DecodeMismatchError) as exc_info:
        decode_block([0] * length)

    assert exc_info.value.expected == 18
    assert exc_info.value.actual == length


def test_tool_position_is_decoded_separately():
    words = encode_joints([1.0] * 6, ToolPosition(100.5, -20.0, 512.25))

    assert decode_tool_position(words) == ToolPosition(100.5, -20.0, 512.25)
    assert decode_block(words).joints == (1.0,) * 6


def test_encode_requires_six_joints():
    with pytest.raises(ValueError):
        encode_joints([1.0, 2.0])


def test_measurement_payload():
    ts = datetime(2024, 5, 1, 12, 0, 0, 123000, tzinfo=timezone.utc)
    measurement = decode_block(encode_joints([1, 2, 3, 4, 5, 6]), timestamp=ts)

    assert measurement.to_dict() == {
        "joint1": 1.0,
        "joint2": 2.0,
        "joint3": 3.0,
        "joint4": 4.0,
        "joint5": 5.0,
        "joint6": 6.0,
        "timestamp": "2024-05-01T12:00:00.123Z",
        "isMockData": False,
    }


def test_timestamp_is_normalized_to_utc():
    local = timezone(timedelta(hours=2))
    ts = datetime(2024, 5, 1, 14, 0, 0, 987654, tzinfo=local)

    assert format_timestamp(ts) == "2024-05-01T12:00:00.987Z"


def test_default_layout():
    assert DEFAULT_LAYOUT.base_address == 100
    assert DEFAULT_LAYOUT.word_count == 18
    assert DEFAULT_LAYOUT.byte_length == 36
