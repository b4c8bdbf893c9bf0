import asyncio

import pytest

from jointstream.common.exceptions import (
    CircuitOpenError,
    CommunicationError,
    DecodeMismatchError,
    ReadError,
)
from jointstream.device.link_manager import LinkManager
from jointstream.sampler.sampler import Sampler


def make_sampler(plc, endpoint, max_attempts=5):
    link = LinkManager(endpoint, max_attempts=max_attempts, transport_factory=plc.factory)
    return Sampler(link)


def test_sample_decodes_device_block(plc, endpoint, joints):
    sampler = make_sampler(plc, endpoint)

    measurement = asyncio.run(sampler.sample())

    assert list(measurement.joints) == joints
    assert measurement.is_mock_data is False
    assert measurement.timestamp.tzinfo is not None
    assert plc.read_calls == [(100, 18)]


def test_sample_returns_none_on_read_failure(plc, endpoint):
    plc.read_error = ReadError("gateway path unavailable")
    sampler = make_sampler(plc, endpoint)

    assert asyncio.run(sampler.sample()) is None
    assert sampler.link.connected is False
    assert sampler.get_stats()["failures"] == 1


def test_sample_returns_none_on_connect_failure(plc, endpoint):
    plc.connect_error = CommunicationError("refused")
    sampler = make_sampler(plc, endpoint)

    assert asyncio.run(sampler.sample()) is None
    assert plc.read_calls == []


def test_short_block_yields_nothing_and_keeps_session(plc, endpoint):
    plc.words = plc.words[:17]
    sampler = make_sampler(plc, endpoint)

    assert asyncio.run(sampler.sample()) is None
    assert sampler.link.connected is True


def test_read_now_surfaces_errors(plc, endpoint):
    async def run():
        sampler = make_sampler(plc, endpoint, max_attempts=1)

        plc.words = plc.words[:10]
        await sampler.link.connect()
        with pytest.raises(DecodeMismatchError):
            await sampler.read_now()

        plc.read_error = ReadError("illegal function")
        with pytest.raises(ReadError):
            await sampler.read_now()

        plc.connect_error = CommunicationError("refused")
        with pytest.raises(CommunicationError):
            await sampler.read_now()

        with pytest.raises(CircuitOpenError):
            await sampler.read_now()

    asyncio.run(run())


def test_timestamps_are_non_decreasing(plc, endpoint):
    async def run():
        sampler = make_sampler(plc, endpoint)
        return [await sampler.sample() for _ in range(5)]

    measurements = asyncio.run(run())
    stamps = [m.timestamp for m in measurements]

    assert stamps == sorted(stamps)
