"""Live broadcast hub for dashboard subscribers."""

import asyncio
import itertools
import json
import logging
from typing import TYPE_CHECKING, Dict, Optional

from mycowood.shared.models import TelemetryRecord

if TYPE_CHECKING:
    from .relay import CommandRelay

logger = logging.getLogger(__name__)

SENSOR_EVENT = "sensorData"


class Subscriber:
    """One connected dashboard.

    Messages wait in a bounded queue. When the queue is full the oldest
    message is discarded so a stalled dashboard only misses readings.
    """

    def __init__(self, subscriber_id: int, buffer_size: int):
        self.id = subscriber_id
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=buffer_size)
        self.dropped = 0
        self.closed = False

    def offer(self, message: str):
        """Queue a message without waiting, discarding the oldest if full."""
        if self.closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            logger.debug(f"Subscriber {self.id} is behind, dropped oldest message")
        self._queue.put_nowait(message)

    async def get(self) -> Optional[str]:
        """Next message, or None once the subscriber has been closed."""
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self):
        """Discard pending messages and wake the reader with None."""
        if self.closed:
            return
        self.closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class BroadcastHub:
    """Registry of live subscribers and fan-out of accepted records."""

    def __init__(self, relay: Optional["CommandRelay"] = None, buffer_size: int = 32):
        """Initialize the hub.

        Args:
            relay: Receives commands sent by subscribers.
            buffer_size: Per-subscriber queue length.
        """
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self.relay = relay
        self.buffer_size = buffer_size
        self._subscribers: Dict[int, Subscriber] = {}
        self._ids = itertools.count(1)
        self._closed = False
        self.published = 0

    def subscribe(self) -> Subscriber:
        """Register a new subscriber. It only sees records published from now on."""
        if self._closed:
            raise RuntimeError("Broadcast hub is closed")
        subscriber = Subscriber(next(self._ids), self.buffer_size)
        self._subscribers[subscriber.id] = subscriber
        logger.info(f"Subscriber {subscriber.id} connected ({len(self._subscribers)} total)")
        return subscriber

    def unsubscribe(self, subscriber: Subscriber):
        """Remove a subscriber. Unknown or already removed handles are ignored."""
        if self._subscribers.pop(subscriber.id, None) is None:
            return
        subscriber.close()
        logger.info(
            f"Subscriber {subscriber.id} disconnected ({len(self._subscribers)} remaining, "
            f"{subscriber.dropped} dropped)"
        )

    def publish(self, record: TelemetryRecord) -> int:
        """Offer a record to every current subscriber without waiting on any.

        Returns:
            Number of subscribers the record was offered to.
        """
        if self._closed:
            return 0
        message = json.dumps({"event": SENSOR_EVENT, "data": record.to_message()})
        subscribers = list(self._subscribers.values())
        for subscriber in subscribers:
            subscriber.offer(message)
        self.published += 1
        return len(subscribers)

    async def on_command(self, subscriber: Subscriber, command: str):
        """Forward a subscriber's command to the device."""
        if self.relay is None:
            logger.warning(f"No command relay, ignoring {command!r} from subscriber {subscriber.id}")
            return
        logger.info(f"Subscriber {subscriber.id} sent command: {command}")
        await self.relay.send(command)

    def close(self):
        """Disconnect every subscriber and refuse new ones."""
        self._closed = True
        for subscriber in list(self._subscribers.values()):
            self.unsubscribe(subscriber)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
