from __future__ import annotations
import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

import websockets

from shared.envelope import NotConnectedError, TransportError
from shared.log import get_logger

logger = get_logger(__name__)


Frame = Union[str, bytes]
EventHandler = Callable[..., None]
Connector = Callable[..., Awaitable[Any]]


class TransportEvent(str, Enum):
    OPENED = "opened"      # no arguments, once per connect
    FRAME = "frame"        # raw frame, in arrival order
    CLOSED = "closed"      # no arguments, at most once per connection
    ERROR = "error"        # TransportError


class WebSocketTransport:
    """
    One websocket connection to the game server.

    Inbound frames are handed to FRAME handlers one at a time on the event
    loop; the next frame is not read until every handler has returned.
    Outbound frames are fire-and-forget.
    """

    def __init__(
        self,
        url: str,
        *,
        ping_interval: float = 5.0,
        ping_timeout: float = 10.0,
        open_timeout: float = 10.0,
        connector: Optional[Connector] = None,
    ) -> None:
        self.url = url
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.open_timeout = open_timeout
        self._connector = connector or websockets.connect
        self.websocket: Optional[Any] = None
        self.handlers: Dict[TransportEvent, List[EventHandler]] = {event: [] for event in TransportEvent}
        self._open = False
        self._closed_fired = True
        self._pending_sends: Set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self._open

    def on(self, event: TransportEvent, handler: EventHandler) -> None:
        self.handlers[event].append(handler)

    async def connect(self) -> None:
        """Open the websocket; raises TransportError when the server is unreachable"""
        if self._open:
            raise TransportError(f"Already connected to {self.url}")
        try:
            self.websocket = await self._connector(
                self.url,
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_timeout,
                open_timeout=self.open_timeout,
            )
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            error = TransportError(f"Could not connect to {self.url}: {e}")
            self._emit(TransportEvent.ERROR, error)
            raise error from e

        self._open = True
        self._closed_fired = False
        logger.info("Connected", extra={"endpoint": self.url})
        self._emit(TransportEvent.OPENED)

    def send(self, frame: str) -> None:
        """
        Queue one text frame on the running loop and return immediately.
        There is no acknowledgement and no retry; write failures are
        reported through the ERROR event.
        """
        if not self._open or self.websocket is None:
            raise NotConnectedError("Cannot send: connection is not open")

        task = asyncio.get_running_loop().create_task(self.websocket.send(frame))
        self._pending_sends.add(task)
        task.add_done_callback(self._send_done)

    async def drain(self) -> None:
        """Wait for every queued frame to be written (or fail)"""
        if self._pending_sends:
            await asyncio.gather(*list(self._pending_sends), return_exceptions=True)

    async def run(self) -> None:
        """Receive frames until the connection ends"""
        if self.websocket is None:
            raise NotConnectedError("Cannot receive: connection was never opened")
        try:
            async for raw in self.websocket:
                self._emit(TransportEvent.FRAME, raw)
        except websockets.exceptions.ConnectionClosedError as e:
            logger.warning("Connection lost: %s", e, extra={"endpoint": self.url})
            self._emit(TransportEvent.ERROR, TransportError(f"Connection lost: {e}"))
        finally:
            self._mark_closed()

    async def close(self) -> None:
        if self.websocket is not None and self._open:
            await self.drain()
            try:
                await self.websocket.close(code=1000)
            except Exception as e:
                logger.error(f"Error closing connection: {e}")
        self._mark_closed()

    def _send_done(self, task: asyncio.Task) -> None:
        self._pending_sends.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Failed to send frame: %s", exc, extra={"endpoint": self.url})
            self._emit(TransportEvent.ERROR, TransportError(f"Failed to send frame: {exc}"))

    def _mark_closed(self) -> None:
        self._open = False
        if self._closed_fired:
            return
        self._closed_fired = True
        logger.info("Disconnected", extra={"endpoint": self.url})
        self._emit(TransportEvent.CLOSED)

    def _emit(self, event: TransportEvent, *args: Any) -> None:
        for handler in list(self.handlers[event]):
            try:
                handler(*args)
            except Exception as e:
                logger.error("Failed to process %s event: %s", event.value, e, exc_info=True)
