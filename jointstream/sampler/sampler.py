"""
Joint Sampler

Reads the joint register block through the link manager and decodes it.
Two entry points:
- read_now(): on-demand read, failures raised to the caller
- sample(): streaming read, failures logged and turned into None
"""

from ..common.exceptions import DecodeMismatchError, JointStreamError
from ..common.logging_setup import get_service_logger
from ..device.link_manager import LinkManager
from .layout import DEFAULT_LAYOUT, JointMeasurement, RegisterLayout, decode_block

logger = get_service_logger("sampler")


class Sampler:
    """Read-and-decode cycle for the joint register block"""

    def __init__(self, link: LinkManager, layout: RegisterLayout = DEFAULT_LAYOUT):
        self.link = link
        self.layout = layout
        self._sample_count = 0
        self._failure_count = 0

    async def read_now(self) -> JointMeasurement:
        """
        Read and decode one block.

        Raises:
            CircuitOpenError, CommunicationError, DeviceTimeoutError,
            ReadError or DecodeMismatchError
        """
        words = await self.link.fetch(self.layout.base_address, self.layout.word_count)
        measurement = decode_block(words, self.layout)
        self._sample_count += 1

        logger.debug(
            "Joint angles: " + ", ".join(
                f"J{i}={angle:.2f}°" for i, angle in enumerate(measurement.joints, 1)
            ),
            extra={"joints": list(measurement.joints)},
        )
        return measurement

    async def sample(self) -> JointMeasurement | None:
        """Read and decode one block; None on any device or decode failure"""
        try:
            return await self.read_now()
        except DecodeMismatchError as e:
            self._failure_count += 1
            logger.warning(f"Discarding malformed register block: {e.message}")
        except JointStreamError as e:
            self._failure_count += 1
            logger.debug(f"No sample this cycle: {e.message}")
        return None

    def get_stats(self) -> dict:
        return {
            "samples": self._sample_count,
            "failures": self._failure_count,
            "base_address": self.layout.base_address,
            "word_count": self.layout.word_count,
        }
