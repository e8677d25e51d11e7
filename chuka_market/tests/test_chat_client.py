import asyncio
import socket

import pytest
import pytest_asyncio
import socketio
import uvicorn

from chuka_market.client.chat import ChatClient, MessageCache
from chuka_market.realtime.relay import BroadcastRelay


class FakeSocket:
    def __init__(self) -> None:
        self.handlers = {}
        self.emitted = []

    def on(self, event, handler):
        self.handlers[event] = handler

    async def emit(self, event, data):
        self.emitted.append((event, data))


def test_cache_round_trips_and_trims(tmp_path):
    cache = MessageCache(tmp_path / "chat" / "messages.json", max_messages=2)

    cache.save(["one", "two", "three"])

    assert cache.load() == ["two", "three"]


def test_cache_missing_or_corrupt_file_is_empty(tmp_path):
    path = tmp_path / "messages.json"
    cache = MessageCache(path)
    assert cache.load() == []

    path.write_text("{not json", encoding="utf-8")
    assert cache.load() == []


@pytest.mark.asyncio
async def test_send_ignores_blank_messages():
    socket = FakeSocket()
    chat = ChatClient(sio=socket)

    assert await chat.send("   ") is False
    assert await chat.send(" hello ") is True

    assert socket.emitted == [("sendMessage", " hello ")]


@pytest.mark.asyncio
async def test_received_messages_are_cached(tmp_path):
    socket = FakeSocket()
    cache = MessageCache(tmp_path / "messages.json")
    chat = ChatClient(sio=socket, cache=cache)

    await socket.handlers["receiveMessage"]("is the desk still available?")
    await socket.handlers["receiveMessage"]({"not": "text"})

    assert chat.messages == ["is the desk still available?"]

    # a fresh client picks up where the last one left off
    reloaded = ChatClient(sio=FakeSocket(), cache=cache)
    assert reloaded.messages == ["is the desk still available?"]


def free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def wait_until(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.02)


@pytest_asyncio.fixture()
async def chat_url():
    relay = BroadcastRelay.create()
    port = free_port()
    server = uvicorn.Server(
        uvicorn.Config(
            socketio.ASGIApp(relay.sio),
            host="127.0.0.1",
            port=port,
            lifespan="off",
            log_level="warning",
            timeout_graceful_shutdown=1,
        )
    )
    serving = asyncio.create_task(server.serve())
    await wait_until(lambda: server.started)

    yield f"http://127.0.0.1:{port}"

    await relay.close()
    server.should_exit = True
    await serving


@pytest.mark.asyncio
async def test_chat_over_a_live_server(chat_url):
    alice = ChatClient(chat_url)
    bob = ChatClient(chat_url)
    carol = ChatClient(chat_url)
    assert isinstance(alice.sio, socketio.AsyncClient)

    try:
        await alice.connect(transports=["polling"])
        await bob.connect(transports=["polling"])

        await alice.send(" hi ")
        await wait_until(lambda: alice.messages and bob.messages)

        await carol.connect(transports=["polling"])
        await bob.send("second")
        await wait_until(
            lambda: len(alice.messages) == 2
            and len(bob.messages) == 2
            and carol.messages
        )
    finally:
        for client in (alice, bob, carol):
            if client.sio.connected:
                await client.disconnect()

    # the sender gets its own echo, the late joiner gets no history
    assert alice.messages == [" hi ", "second"]
    assert bob.messages == [" hi ", "second"]
    assert carol.messages == ["second"]
