"""
Notification Sink

Ordered, rate-limited delivery of progress messages to Slack.

Evaluators publish events without waiting; a single consumer task posts
them in enqueue order, spaced at least ``interval`` seconds apart. Delivery
failures are logged and dropped, they never reach the producer.
"""

import asyncio
import logging
from typing import Optional, Protocol

from .models import NotificationEvent, NotificationTarget

logger = logging.getLogger("radar.ranker.notifications")


class MessagePoster(Protocol):
    async def post_message(self, channel: str, text: str, thread_ts: Optional[str] = None): ...


_CLOSE = object()


class NotificationSink:
    """
    Single-consumer notification queue.

    Lifecycle: ``start()`` → any number of ``publish()`` → ``close()``.
    ``close()`` waits until every queued event has been handled.
    Used as an async context manager it starts on enter and closes on exit
    (or aborts without draining when the run is cancelled).

    Without a poster or target the sink is disabled and every method is a no-op.
    """

    def __init__(
        self,
        poster: Optional[MessagePoster] = None,
        target: Optional[NotificationTarget] = None,
        interval: float = 0.5,
        buffer_size: int = 100,
    ):
        self._poster = poster
        self._target = target
        self._interval = interval
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=buffer_size)
        self._consumer: Optional[asyncio.Task] = None
        self._closed = False
        self.delivered = 0
        self.failed = 0
        self.dropped = 0

    @property
    def enabled(self) -> bool:
        return self._poster is not None and self._target is not None

    async def start(self) -> None:
        if not self.enabled or self._consumer is not None:
            return
        self._consumer = asyncio.create_task(self._consume(), name="notification-sink")

    def publish(self, text: str) -> bool:
        """
        Queue a message for the run's target. Never blocks.

        Returns False when the sink is disabled, closed, or its buffer is full.
        """
        if not self.enabled or self._closed:
            return False

        event = NotificationEvent(
            text=text,
            channel=self._target.channel,
            thread_ts=self._target.thread_ts,
        )
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("Notification buffer full, dropping message: %s", text)
            return False
        return True

    async def _consume(self) -> None:
        loop = asyncio.get_running_loop()
        last_sent: Optional[float] = None

        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                logger.debug("Notification sink drained")
                return

            if last_sent is not None:
                wait = self._interval - (loop.time() - last_sent)
                if wait > 0:
                    await asyncio.sleep(wait)

            try:
                await self._poster.post_message(item.channel, item.text, thread_ts=item.thread_ts)
                self.delivered += 1
            except Exception as e:
                # Delivery is best effort; the run continues
                self.failed += 1
                logger.error("Failed to send notification (processing will continue): %s: %s",
                             item.text, e)
            last_sent = loop.time()

    async def close(self) -> None:
        """Stop accepting events and wait for the consumer to drain the queue"""
        self._closed = True
        if self._consumer is None:
            return
        if not self._consumer.done():
            await self._queue.put(_CLOSE)
        await self._consumer
        self._consumer = None

    async def abort(self) -> None:
        """Stop immediately, discarding queued events"""
        self._closed = True
        if self._consumer is None:
            return
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

    async def __aenter__(self) -> "NotificationSink":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None and issubclass(exc_type, asyncio.CancelledError):
            await self.abort()
        else:
            await self.close()
