"""Live order feed hub: fan-out of order events to connected admin screens.

Each admin connection gets a `Subscription`: a bounded asyncio queue living
on the event loop that serves the connection. `NotificationHub.broadcast`
encodes the event once and schedules it onto every subscriber's loop with
`call_soon_threadsafe`, so it can be called from request handlers and from
domain event handlers alike, and never waits on a subscriber. A full queue
drops the frame for that subscriber only; a subscriber whose loop is gone is
removed.

Frames are server-sent events:

    event: order
    data: {"id": "...", "orderNumber": 3, ...}

plus a comment line (`: keepalive`) whenever a subscriber has been idle for
the keepalive interval.
"""

import asyncio
import itertools
import json
import threading
from datetime import date, datetime

import structlog

logger = structlog.get_logger(__name__)

CONNECTED_EVENT = "connected"
ORDER_EVENT = "order"
KEEPALIVE_FRAME = ": keepalive\n\n"

DEFAULT_KEEPALIVE_SECONDS = 25.0
DEFAULT_QUEUE_SIZE = 100


def _json_default(value):
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value)


def encode_frame(event: str, payload) -> str:
    data = json.dumps(payload, ensure_ascii=False, default=_json_default)
    return f"event: {event}\ndata: {data}\n\n"


class Subscription:
    """One admin connection's outbound channel."""

    def __init__(self, subscription_id: int, loop: asyncio.AbstractEventLoop, queue_size: int):
        self.id = subscription_id
        self.loop = loop
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self.dropped = 0

    def offer(self, frame: str) -> None:
        """Queue a frame; must run on `self.loop`."""
        try:
            self.queue.put_nowait(frame)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("Live feed subscriber is not keeping up, frame dropped", subscription_id=self.id)

    async def next_frame(self, timeout: float | None = None) -> str:
        """Next queued frame, or the keepalive frame after `timeout` idle seconds."""
        if timeout is None:
            return await self.queue.get()
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return KEEPALIVE_FRAME

    async def frames(self, keepalive: float):
        while True:
            yield await self.next_frame(timeout=keepalive)


class NotificationHub:
    def __init__(self, keepalive_seconds: float = DEFAULT_KEEPALIVE_SECONDS, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.keepalive_seconds = keepalive_seconds
        self.queue_size = queue_size
        self._subscribers: dict[int, Subscription] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a channel on the running event loop and acknowledge it."""
        loop = asyncio.get_running_loop()
        with self._lock:
            subscription = Subscription(next(self._ids), loop, self.queue_size)
            self._subscribers[subscription.id] = subscription

        subscription.offer(encode_frame(CONNECTED_EVENT, {"subscriptionId": subscription.id}))
        logger.info("Live feed subscriber connected", subscription_id=subscription.id)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            removed = self._subscribers.pop(subscription.id, None)
        if removed is not None:
            logger.info("Live feed subscriber disconnected", subscription_id=subscription.id)

    def broadcast(self, event: str, payload) -> int:
        """Send one event to every subscriber; returns how many it was handed to."""
        frame = encode_frame(event, payload)
        with self._lock:
            subscribers = list(self._subscribers.values())

        delivered = 0
        for subscription in subscribers:
            try:
                subscription.loop.call_soon_threadsafe(subscription.offer, frame)
            except RuntimeError:
                # Event loop already closed: the connection is gone.
                self.unsubscribe(subscription)
                continue
            delivered += 1

        return delivered

    def close_all(self) -> None:
        with self._lock:
            self._subscribers.clear()


_hub: NotificationHub | None = None
_hub_lock = threading.Lock()


def get_hub() -> NotificationHub:
    """Process-wide hub, built from the domain's `custom` settings on first use."""
    global _hub
    with _hub_lock:
        if _hub is None:
            from storefront.domain import storefront

            custom = storefront.config.get("custom") or {}
            _hub = NotificationHub(
                keepalive_seconds=float(custom.get("KEEPALIVE_SECONDS", DEFAULT_KEEPALIVE_SECONDS)),
                queue_size=int(custom.get("SUBSCRIBER_QUEUE_SIZE", DEFAULT_QUEUE_SIZE)),
            )
        return _hub


def reset_hub() -> None:
    """Forget the process-wide hub (useful for testing)."""
    global _hub
    with _hub_lock:
        if _hub is not None:
            _hub.close_all()
        _hub = None
