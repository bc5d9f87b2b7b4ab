"""
EventBroadcaster: fans inbound webhook events out to every open SSE channel.

Each connected browser is a Subscriber holding its own frame queue. A
broadcast writes the serialized frame to every subscriber independently; a
subscriber whose write fails is dropped without affecting the others.
Nothing is buffered for subscribers that connect later.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Optional, Set

from relay.errors import SubscriberClosedError

logger = logging.getLogger(__name__)

_CLOSED = object()


def format_event(event_type: str, payload: Any) -> str:
    """Serialize an event into the text/event-stream wire format."""
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return f"event: {event_type}\ndata: {data}\n\n"


class Subscriber:
    """One open push channel. OPEN until close() is called."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def write(self, frame: str):
        if self.closed:
            raise SubscriberClosedError("subscriber is closed")
        self._queue.put_nowait(frame)

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[str]:
        return self._frames()

    async def _frames(self) -> AsyncIterator[str]:
        while True:
            frame = await self._queue.get()
            if frame is _CLOSED:
                return
            yield frame


class EventBroadcaster:
    """Owns the subscriber registry. Construct at startup, close() at shutdown."""

    def __init__(self):
        self._subscribers: Set[Any] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, subscriber: Optional[Any] = None) -> Any:
        """
        Register a channel and return it as the handle for unsubscribe().
        Any object with write(frame) and close() can be registered.
        """
        if subscriber is None:
            subscriber = Subscriber()
        self._subscribers.add(subscriber)
        logger.info(f"SSE client connected ({len(self._subscribers)} open)")
        return subscriber

    def unsubscribe(self, subscriber: Any):
        """Remove a channel. Removing an unknown handle is a no-op."""
        if subscriber not in self._subscribers:
            return
        self._subscribers.discard(subscriber)
        subscriber.close()
        logger.info(f"SSE client disconnected ({len(self._subscribers)} open)")

    def broadcast(self, event_type: str, payload: Any) -> int:
        """
        Write one event to every registered subscriber.

        Returns:
            number of subscribers the frame was written to. Never raises for
            a failing subscriber; that subscriber is removed instead.
        """
        frame = format_event(event_type, payload)
        delivered = 0

        # Snapshot: failing subscribers are removed while iterating
        for subscriber in list(self._subscribers):
            try:
                subscriber.write(frame)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping SSE client after failed write: {e}")
                self._subscribers.discard(subscriber)
                try:
                    subscriber.close()
                except Exception as close_error:
                    logger.debug(f"Error closing dropped SSE client: {close_error}")

        logger.info(f"Broadcast '{event_type}' to {delivered} client(s)")
        return delivered

    def close(self):
        """Close every subscriber so their streams end, then clear the registry."""
        subscribers = list(self._subscribers)
        self._subscribers.clear()
        for subscriber in subscribers:
            try:
                subscriber.close()
            except Exception as e:
                logger.debug(f"Error closing SSE client during shutdown: {e}")
        if subscribers:
            logger.info(f"Closed {len(subscribers)} SSE client(s) on shutdown")
