"""
Live update broadcaster.

Fire-and-forget publishing of match and bracket changes to spectators of an event.
Route handlers run in worker threads, subscribers live on the server's event loop,
so delivery hops threads with call_soon_threadsafe. No acknowledgements, no
persistence: a subscriber that misses messages must refetch the brackets.
"""
import asyncio
import logging
import threading
from typing import Any, Dict, List, Optional

from bracket_engine.config import broadcast_queue_size

logger = logging.getLogger(__name__)

MATCH_STARTED = "match:started"
MATCH_UPDATE = "match:update"
BRACKET_REFRESH = "bracket:refresh"


def channel_name(tournament_id: int) -> str:
    return f"tournament-{tournament_id}"


class Broadcaster:
    """Publish-only interface handed to the services that emit live updates."""

    def publish(self, tournament_id: int, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class Subscription:
    """One spectator's inbox on a tournament channel."""

    def __init__(self, channel: str, loop: asyncio.AbstractEventLoop, maxsize: int):
        self.channel = channel
        self.loop = loop
        self.queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def _deliver(self, message: Dict[str, Any]) -> None:
        # Runs on the subscriber's loop
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Subscriber queue full on {self.channel}; dropped {message.get('type')}")

    async def get(self) -> Dict[str, Any]:
        return await self.queue.get()


class ChannelBroadcaster(Broadcaster):
    """In-process pub/sub keyed by tournament channel."""

    def __init__(self, queue_size: Optional[int] = None):
        self._queue_size = queue_size if queue_size is not None else broadcast_queue_size()
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, tournament_id: int) -> Subscription:
        """Register a subscriber. Must be called from inside the subscriber's running event loop."""
        channel = channel_name(tournament_id)
        subscription = Subscription(channel, asyncio.get_running_loop(), self._queue_size)
        with self._lock:
            self._subscribers.setdefault(channel, []).append(subscription)
            count = len(self._subscribers[channel])
        logger.info(f"Spectator joined {channel} ({count} total)")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.channel, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.channel, None)
        logger.info(f"Spectator left {subscription.channel}")

    def subscriber_count(self, tournament_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(channel_name(tournament_id), []))

    def publish(self, tournament_id: int, event: str, payload: Dict[str, Any]) -> None:
        channel = channel_name(tournament_id)
        message = {"type": event, "tournament_id": tournament_id, "data": payload}
        with self._lock:
            subscribers = list(self._subscribers.get(channel, []))

        dead = []
        for subscription in subscribers:
            try:
                subscription.loop.call_soon_threadsafe(subscription._deliver, message)
            except RuntimeError:
                # Loop already closed; the spectator is gone
                dead.append(subscription)

        for subscription in dead:
            self.unsubscribe(subscription)


def publish_safely(
    broadcaster: Optional[Broadcaster], tournament_id: int, event: str, payload: Dict[str, Any]
) -> None:
    """Publish without letting a broadcaster failure reach the caller. State is already committed."""
    if broadcaster is None:
        return
    try:
        broadcaster.publish(tournament_id, event, payload)
    except Exception as e:
        logger.warning(f"Failed to broadcast {event} on {channel_name(tournament_id)}: {e}")
