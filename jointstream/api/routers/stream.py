"""
Stream Router

WebSocket push channel for viewers. Each connection is one subscriber:

Outbound events:
- {"event": "connectionStatus", "data": {"connected", "message"}}
  on attach and on every link transition
- {"event": "robotData", "data": <measurement>} per successful tick

Inbound events:
- {"event": "requestData"} - one extra read, pushed only if it succeeds
"""

import asyncio
import json
from collections import deque

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from ...common.logging_setup import get_service_logger
from ...device.link_manager import LinkStatus
from ...sampler.layout import JointMeasurement
from ..dependencies import Runtime, get_runtime

router = APIRouter()
logger = get_service_logger("api.stream")

STATUS_EVENT = "connectionStatus"
DATA_EVENT = "robotData"
REQUEST_EVENT = "requestData"

OUTBOX_LIMIT = 8


class Outbox:
    """
    Bounded FIFO between the link/timer callbacks and the socket writer.

    When full, the oldest robotData event is dropped to make room, so a
    viewer that stops reading costs a fixed amount of memory. Status events
    are only dropped when the outbox holds nothing else.
    """

    def __init__(self, limit: int = OUTBOX_LIMIT):
        self.limit = limit
        self.dropped = 0
        self._items: deque[dict] = deque()
        self._ready = asyncio.Event()

    def __len__(self) -> int:
        return len(self._items)

    def put(self, message: dict) -> None:
        if len(self._items) >= self.limit:
            self._drop_oldest()
        self._items.append(message)
        self._ready.set()

    async def get(self) -> dict:
        while not self._items:
            self._ready.clear()
            await self._ready.wait()
        return self._items.popleft()

    def _drop_oldest(self) -> None:
        self.dropped += 1
        for message in self._items:
            if message["event"] == DATA_EVENT:
                self._items.remove(message)
                return
        self._items.popleft()


async def _pump(websocket: WebSocket, outbox: Outbox) -> None:
    """Single writer for the socket; preserves enqueue order"""
    while True:
        message = await outbox.get()
        await websocket.send_json(message)


def _parse_event(text: str) -> str | None:
    try:
        message = json.loads(text)
    except ValueError:
        return None
    if isinstance(message, dict):
        return message.get("event")
    return None


@router.websocket("/ws")
async def stream(
    websocket: WebSocket,
    interval_ms: int | None = Query(None, gt=0),
    runtime: Runtime = Depends(get_runtime),
):
    await websocket.accept()
    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
    logger.info(f"Viewer connected: {client}")

    outbox = Outbox()

    def on_status(status: LinkStatus) -> None:
        outbox.put({"event": STATUS_EVENT, "data": status.to_dict()})

    async def deliver(measurement: JointMeasurement) -> None:
        outbox.put({"event": DATA_EVENT, "data": measurement.to_dict()})

    on_status(runtime.link.status())
    remove_listener = runtime.link.add_status_listener(on_status)
    sender = asyncio.create_task(_pump(websocket, outbox))
    subscription = await runtime.registry.attach(deliver, interval_ms)

    try:
        while True:
            event = _parse_event(await websocket.receive_text())
            if event == REQUEST_EVENT:
                measurement = await runtime.sampler.sample()
                if measurement is not None:
                    await deliver(measurement)
            else:
                logger.debug(f"Ignoring message from {client} (event={event!r})")

    except WebSocketDisconnect:
        logger.info(f"Viewer disconnected: {client}")
    finally:
        remove_listener()
        sender.cancel()
        await runtime.registry.detach(subscription.id)
        await asyncio.gather(sender, return_exceptions=True)
