#!/usr/bin/env python3
"""
Click Battler Client

Keeps a local mirror of the game's player table in sync with the server
and sends the player's actions back over the same websocket.

    client = BattlerClient(ClientConfig.from_env())
    client.subscribe(lambda players: print(players))
    await client.connect()
    await client.run()
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional

from client.commands import ActionCommandEncoder
from client.config import ClientConfig
from client.core.Bootstrap import BootstrapSequencer, PlayerId
from client.core.MessageHandlers import TypedMessageDispatcher
from client.core.MessageTypes import ConnectionPhase
from client.state import StateSubscriber, WorldState, WorldStateStore
from client.ws_client import Frame, TransportEvent, WebSocketTransport
from shared.envelope import (
    BattlerProtocolError,
    DecodeFailure,
    InboundEnvelope,
    OutboundEnvelope,
    ProtocolViolation,
    decode,
)
from shared.log import get_logger

logger = get_logger(__name__)

ErrorListener = Callable[[BattlerProtocolError], None]
PhaseHandler = Callable[[InboundEnvelope], Any]


class BattlerClient:
    """
    Facade the UI talks to. Everything it exposes is read-only state plus
    the two player actions.
    """

    def __init__(self, config: Optional[ClientConfig] = None,
                 transport: Optional[WebSocketTransport] = None) -> None:
        self.config = config or ClientConfig()
        self.store = WorldStateStore()
        self.bootstrap = BootstrapSequencer(self.store)
        self.dispatcher = TypedMessageDispatcher(self.store)
        self.transport = transport or WebSocketTransport(
            self.config.endpoint,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
            open_timeout=self.config.open_timeout,
        )
        self.commands = ActionCommandEncoder(self.transport.send)
        self.connected = False
        self.last_error: Optional[BattlerProtocolError] = None
        self._error_listeners: List[ErrorListener] = []

        # How a decoded frame is interpreted depends only on the phase
        self._phase_handlers: Dict[ConnectionPhase, PhaseHandler] = {
            ConnectionPhase.DISCONNECTED: self._reject_disconnected,
            ConnectionPhase.AWAITING_IDENTITY: self.bootstrap.accept_identity,
            ConnectionPhase.AWAITING_SNAPSHOT: self.bootstrap.accept_snapshot,
            ConnectionPhase.SYNCED: self.dispatcher.dispatch,
        }

        self.transport.on(TransportEvent.OPENED, self._on_opened)
        self.transport.on(TransportEvent.FRAME, self.handle_frame)
        self.transport.on(TransportEvent.CLOSED, self._on_closed)
        self.transport.on(TransportEvent.ERROR, self._report)

    # ----- read-only view for the UI -----

    @property
    def identity(self) -> Optional[PlayerId]:
        return self.bootstrap.identity

    @property
    def phase(self) -> ConnectionPhase:
        return self.bootstrap.phase

    @property
    def players(self) -> WorldState:
        return self.store.read()

    @property
    def stale(self) -> bool:
        return self.store.stale

    @property
    def local_player(self) -> Optional[Any]:
        if self.identity is None:
            return None
        return self.store.get(self.identity)

    def subscribe(self, callback: StateSubscriber) -> Callable[[], None]:
        return self.store.subscribe(callback)

    def on_error(self, callback: ErrorListener) -> None:
        self._error_listeners.append(callback)

    # ----- player actions -----

    def heal_self(self) -> OutboundEnvelope:
        return self.commands.heal_self()

    def attack_player(self, target_id: PlayerId) -> OutboundEnvelope:
        return self.commands.attack_player(target_id)

    # ----- connection lifecycle -----

    async def connect(self) -> None:
        await self.transport.connect()

    async def run(self) -> None:
        await self.transport.run()

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "BattlerClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def handle_frame(self, raw: Frame) -> None:
        """Decode one frame and apply it according to the current phase"""
        try:
            envelope = decode(raw)
        except DecodeFailure as e:
            logger.warning("Discarding frame: %s", e, extra={"phase": self.phase.value})
            self._report(e)
            return

        logger.debug("Received %s", envelope.describe(), extra={"phase": self.phase.value})
        handler = self._phase_handlers[self.phase]
        try:
            handler(envelope)
        except ProtocolViolation as e:
            if e.phase is None:
                e.phase = self.phase.value
            logger.warning("Protocol violation: %s", e, extra={"phase": self.phase.value})
            self._report(e)

    def _reject_disconnected(self, envelope: InboundEnvelope) -> None:
        raise ProtocolViolation(f"Received {envelope.describe()} while disconnected", envelope=envelope)

    def _on_opened(self) -> None:
        self.connected = True
        self.last_error = None
        self.bootstrap.opened()

    def _on_closed(self) -> None:
        self.connected = False
        self.bootstrap.closed()
        # Keep the last known players readable but flag them as out of date
        self.store.mark_stale()

    def _report(self, error: BattlerProtocolError) -> None:
        self.last_error = error
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception as e:
                logger.error("Error listener %r failed: %s", listener, e, exc_info=True)
