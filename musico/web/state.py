"""PlayerState — observable state bridge between the station engine and WebSocket clients."""
import asyncio
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Events a late joiner needs to see even though they were broadcast before it connected
STICKY_EVENTS = ("stations",)


class PlayerState:
    def __init__(self, queue_size: int = 50):
        self._queue_size = queue_size
        self._subscribers: dict[str, asyncio.Queue] = {}
        self._latest: dict[str, Any] = {}

    def subscribe(self, client_id: str, sync: Optional[dict] = None) -> asyncio.Queue:
        """Register a new client and return its (event, data) queue.

        The queue starts with a ``sync`` event carrying ``sync`` (when given),
        followed by the latest value of every sticky event seen so far.
        """
        q: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        if sync is not None:
            q.put_nowait(("sync", sync))
        for event, data in self._latest.items():
            q.put_nowait((event, data))
        self._subscribers[client_id] = q
        return q

    def unsubscribe(self, client_id: str):
        self._subscribers.pop(client_id, None)

    @property
    def client_count(self) -> int:
        return len(self._subscribers)

    async def broadcast(self, event: str, data: Any):
        """Push an event to all connected clients. Slow clients lose their oldest event."""
        if event in STICKY_EVENTS:
            self._latest[event] = data
        dead = []
        for cid, q in self._subscribers.items():
            try:
                q.put_nowait((event, data))
            except asyncio.QueueFull:
                try:
                    q.get_nowait()
                    q.put_nowait((event, data))
                except (asyncio.QueueEmpty, asyncio.QueueFull):
                    dead.append(cid)
        for cid in dead:
            logger.info("Dropping stalled client %s", cid)
            self._subscribers.pop(cid, None)
