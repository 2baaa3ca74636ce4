import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from client.client import BattlerClient
from client.ws_client import WebSocketTransport


class DummyWebSocket:
    """Stands in for a websockets ClientConnection: frames are fed by the test."""

    def __init__(self) -> None:
        self.sent_messages: list[str] = []
        self.closed = False
        self.close_code: int | None = None
        self.fail_sends = False
        self._inbound: asyncio.Queue = asyncio.Queue()

    def feed(self, *frames) -> None:
        for frame in frames:
            self._inbound.put_nowait(frame)

    def end(self) -> None:
        self._inbound.put_nowait(None)

    def drop(self, error: BaseException) -> None:
        """Make iteration raise error, as a connection dropped without a close frame does."""
        self._inbound.put_nowait(error)

    async def send(self, data: str) -> None:
        if self.fail_sends:
            raise ConnectionError("socket is gone")
        self.sent_messages.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = True
        self.close_code = code
        self.end()

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._inbound.get()
        if frame is None:
            raise StopAsyncIteration
        if isinstance(frame, BaseException):
            raise frame
        return frame


@pytest.fixture
def dummy_ws():
    return DummyWebSocket()


@pytest.fixture
def transport(dummy_ws):
    connect_calls = []

    async def connector(url, **kwargs):
        connect_calls.append((url, kwargs))
        return dummy_ws

    t = WebSocketTransport("ws://game.test/chat", connector=connector)
    t.connect_calls = connect_calls
    return t


@pytest.fixture
def client(transport):
    return BattlerClient(transport=transport)
