import asyncio
import logging
from typing import Literal

import socketio

logger = logging.getLogger(__name__)

SEND_EVENT = "sendMessage"
RECEIVE_EVENT = "receiveMessage"

SlowConsumerPolicy = Literal["drop", "disconnect"]


class BroadcastRelay:
    """
    Rebroadcasts every chat message to all connected clients, sender included.

    There are no rooms and no history. Each connection gets a bounded outbound
    queue drained by its own writer task, so one slow client never holds up
    delivery to the others. When a queue is full the message is either dropped
    for that client or the client is disconnected, depending on `policy`.
    """

    def __init__(
        self,
        sio: socketio.AsyncServer,
        queue_size: int = 100,
        policy: SlowConsumerPolicy = "drop",
    ) -> None:
        self.sio = sio
        self.queue_size = queue_size
        self.policy = policy
        self.dropped = 0
        self._queues: dict[str, asyncio.Queue[str]] = {}
        self._writers: dict[str, asyncio.Task] = {}

        sio.on("connect", self.on_connect)
        sio.on("disconnect", self.on_disconnect)
        sio.on(SEND_EVENT, self.on_send_message)

    @classmethod
    def create(
        cls,
        cors_origins: list[str] | str = "*",
        queue_size: int = 100,
        policy: SlowConsumerPolicy = "drop",
    ) -> "BroadcastRelay":
        sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=cors_origins)
        return cls(sio, queue_size=queue_size, policy=policy)

    @property
    def connections(self) -> set[str]:
        return set(self._queues)

    async def on_connect(self, sid, environ, auth=None):
        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=self.queue_size)
        self._queues[sid] = queue
        self._writers[sid] = asyncio.create_task(self._write(sid, queue))
        logger.info("User connected: %s", sid)

    async def on_disconnect(self, sid, reason=None):
        if self._queues.pop(sid, None) is None:
            return
        writer = self._writers.pop(sid, None)
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
        logger.info("User disconnected: %s", sid)

    async def on_send_message(self, sid, message):
        if not isinstance(message, str):
            logger.warning("Ignoring non-text chat payload from %s", sid)
            return
        await self.publish(message)

    async def publish(self, message: str) -> None:
        slow = []
        for sid, queue in list(self._queues.items()):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                slow.append(sid)

        for sid in slow:
            if self.policy == "disconnect":
                logger.warning("Disconnecting slow chat client %s", sid)
                await self.sio.disconnect(sid)
                await self.on_disconnect(sid)
            else:
                self.dropped += 1
                logger.warning("Dropped chat message for slow client %s", sid)

    async def flush(self) -> None:
        """Waits until every queued message has been handed to the server."""
        await asyncio.gather(*(q.join() for q in list(self._queues.values())))

    async def close(self) -> None:
        writers = list(self._writers.values())
        for sid in list(self._queues):
            await self.on_disconnect(sid)
        await asyncio.gather(*writers, return_exceptions=True)

    async def _write(self, sid: str, queue: asyncio.Queue[str]) -> None:
        while True:
            message = await queue.get()
            try:
                await self.sio.emit(RECEIVE_EVENT, message, to=sid)
            except Exception:
                logger.exception("Failed to deliver chat message to %s", sid)
            finally:
                queue.task_done()
