"""
Runtime wiring shared by all routers.

One Runtime per application: the link manager, the sampler on top of it,
the subscription registry and the (disabled) writer capability.
"""

from dataclasses import dataclass

from fastapi.requests import HTTPConnection

from ..common.config import AppConfig, validate_config
from ..device.link_manager import LinkManager, TransportFactory
from ..device.modbus_client import ModbusClient
from ..device.writer import DisabledWriter, JointWriter
from ..sampler.layout import RegisterLayout
from ..sampler.sampler import Sampler
from ..sampler.subscriptions import SubscriptionRegistry


@dataclass
class Runtime:
    config: AppConfig
    link: LinkManager
    sampler: Sampler
    registry: SubscriptionRegistry
    writer: JointWriter


def build_runtime(
    config: AppConfig,
    transport_factory: TransportFactory = ModbusClient,
) -> Runtime:
    """Create the link, sampler and registry for a configuration"""
    validate_config(config)
    link = LinkManager(
        config.device,
        max_attempts=config.sampling.max_connect_attempts,
        transport_factory=transport_factory,
    )
    layout = RegisterLayout(
        base_address=config.sampling.base_address,
        word_count=config.sampling.word_count,
    )
    sampler = Sampler(link, layout)
    registry = SubscriptionRegistry(sampler, default_interval_ms=config.sampling.interval_ms)

    return Runtime(
        config=config,
        link=link,
        sampler=sampler,
        registry=registry,
        writer=DisabledWriter(),
    )


def get_runtime(connection: HTTPConnection) -> Runtime:
    """FastAPI dependency (works for HTTP and WebSocket routes)"""
    return connection.app.state.runtime
