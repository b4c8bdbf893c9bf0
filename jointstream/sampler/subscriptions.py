"""
Subscription Registry

Maps subscriber id -> cadence + delivery callback. Each subscription runs
its own ScheduledLoop; the device work of every tick goes through the
sampler and therefore through the link manager's single session lock.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable

from ..common.exceptions import ConfigError
from ..common.logging_setup import get_service_logger
from ..common.scheduler import ScheduledLoop
from .layout import JointMeasurement
from .sampler import Sampler

logger = get_service_logger("sampler.subscriptions")

DEFAULT_INTERVAL_MS = 100

Deliver = Callable[[JointMeasurement], Awaitable[None]]


@dataclass
class Subscription:
    """A registered consumer of periodic measurements"""
    id: str
    interval_ms: int
    deliver: Deliver
    loop: ScheduledLoop | None = None
    active: bool = True
    delivered_count: int = 0
    attached_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SubscriptionRegistry:
    """
    Per-subscriber timers over one shared sampler.

    detach() guarantees that once it returns, the subscriber receives
    nothing more.
    """

    def __init__(self, sampler: Sampler, default_interval_ms: int = DEFAULT_INTERVAL_MS):
        self._sampler = sampler
        self._default_interval_ms = default_interval_ms
        self._subscriptions: dict[str, Subscription] = {}

    def __len__(self) -> int:
        return len(self._subscriptions)

    def get(self, subscriber_id: str) -> Subscription | None:
        return self._subscriptions.get(subscriber_id)

    async def attach(
        self,
        deliver: Deliver,
        interval_ms: int | None = None,
        subscriber_id: str | None = None,
    ) -> Subscription:
        """
        Register a subscriber and start its timer.

        Args:
            deliver: Async callback receiving each successful measurement
            interval_ms: Tick period (defaults to the registry default)
            subscriber_id: Optional id; a random one is generated otherwise

        Raises:
            ConfigError: non-positive interval or duplicate id
        """
        interval_ms = self._default_interval_ms if interval_ms is None else interval_ms
        if interval_ms <= 0:
            raise ConfigError(f"Subscription interval must be positive, got {interval_ms}")

        subscriber_id = subscriber_id or uuid.uuid4().hex
        if subscriber_id in self._subscriptions:
            raise ConfigError(f"Subscriber already attached: {subscriber_id}")

        subscription = Subscription(
            id=subscriber_id,
            interval_ms=interval_ms,
            deliver=deliver,
        )
        subscription.loop = ScheduledLoop(
            interval_ms / 1000,
            lambda: self._tick(subscription),
            name=f"subscriber:{subscriber_id[:8]}",
        )

        self._subscriptions[subscriber_id] = subscription
        await subscription.loop.start()

        logger.info(
            f"Subscriber attached: {subscriber_id} ({interval_ms} ms, {len(self)} active)",
            extra={"subscriber_id": subscriber_id, "interval_ms": interval_ms},
        )
        return subscription

    async def detach(self, subscriber_id: str) -> bool:
        """Stop a subscriber's timer; False if the id is unknown"""
        subscription = self._subscriptions.pop(subscriber_id, None)
        if subscription is None:
            return False

        subscription.active = False
        if subscription.loop:
            await subscription.loop.stop()

        logger.info(
            f"Subscriber detached: {subscriber_id} "
            f"({subscription.delivered_count} delivered, {len(self)} active)",
            extra={"subscriber_id": subscriber_id},
        )
        return True

    async def close_all(self) -> None:
        """Detach every subscriber (shutdown)"""
        for subscriber_id in list(self._subscriptions):
            await self.detach(subscriber_id)

    async def _tick(self, subscription: Subscription) -> None:
        if not subscription.active:
            return

        measurement = await self._sampler.sample()
        if measurement is None or not subscription.active:
            return

        await subscription.deliver(measurement)
        subscription.delivered_count += 1

    def get_stats(self) -> dict:
        return {
            subscriber_id: {
                "interval_ms": sub.interval_ms,
                "delivered": sub.delivered_count,
                "attached_at": sub.attached_at.isoformat(),
                "scheduler": sub.loop.get_stats() if sub.loop else None,
            }
            for subscriber_id, sub in self._subscriptions.items()
        }
