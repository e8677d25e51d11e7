import json
import logging
from pathlib import Path
from typing import Optional

import socketio

from chuka_market.realtime.relay import RECEIVE_EVENT, SEND_EVENT

logger = logging.getLogger(__name__)


class MessageCache:
    """
    Keeps received chat messages on disk so they survive a restart.

    Display convenience only, the server never sees this file.
    """

    def __init__(self, path: str | Path, max_messages: int = 200) -> None:
        self.path = Path(path)
        self.max_messages = max_messages

    def load(self) -> list[str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except json.JSONDecodeError:
            logger.warning("Chat cache %s is corrupt, starting empty", self.path)
            return []
        if not isinstance(data, list):
            return []
        return [m for m in data if isinstance(m, str)][-self.max_messages :]

    def save(self, messages: list[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(messages[-self.max_messages :]), encoding="utf-8"
        )

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class ChatClient:
    def __init__(
        self,
        url: str = "http://localhost:5000",
        cache: Optional[MessageCache] = None,
        sio: Optional[socketio.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.cache = cache
        self.sio = sio or socketio.AsyncClient()
        self.messages: list[str] = cache.load() if cache else []
        self.sio.on(RECEIVE_EVENT, self.on_receive)

    async def connect(self, transports: Optional[list[str]] = None) -> None:
        await self.sio.connect(self.url, transports=transports)

    async def disconnect(self) -> None:
        await self.sio.disconnect()

    async def send(self, text: str) -> bool:
        if not text.strip():
            return False
        await self.sio.emit(SEND_EVENT, text)
        return True

    async def on_receive(self, message) -> None:
        if not isinstance(message, str):
            return
        self.messages.append(message)
        if self.cache:
            self.cache.save(self.messages)
