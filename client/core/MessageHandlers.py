from __future__ import annotations

from typing import Callable, Dict, Optional

from client.core.MessageTypes import InboundType
from client.state import WorldStateStore
from shared.envelope import InboundEnvelope, ProtocolViolation
from shared.log import get_logger, log_protocol_message

logger = get_logger(__name__)

# Type alias for handler functions
MessageHandler = Callable[[WorldStateStore, InboundEnvelope], None]


class GameMessageHandlers:
    """
    Handlers for typed envelopes received once the connection is synced.
    Each receives the state store and the decoded envelope.
    """

    @staticmethod
    def handle_world_update(store: WorldStateStore, envelope: InboundEnvelope) -> None:
        """
        Handle WorldUpdate - replace the whole player table.

        Payload: {players: {player_id: record, ...}}
        """
        players = envelope.fields.get("players")
        if not isinstance(players, dict):
            raise ProtocolViolation(
                f"WorldUpdate 'players' must be an object, got {type(players).__name__}",
                envelope=envelope,
            )
        store.replace_all(players)

    @staticmethod
    def handle_player_joined(store: WorldStateStore, envelope: InboundEnvelope) -> None:
        # The next WorldUpdate carries the new player
        log_protocol_message(logger, "info", "Player joined", envelope=envelope.value)

    @staticmethod
    def handle_player_died(store: WorldStateStore, envelope: InboundEnvelope) -> None:
        log_protocol_message(logger, "info", "Player died", envelope=envelope.value)


# Handler registry mapping message types to their handlers
HANDLER_REGISTRY: Dict[InboundType, MessageHandler] = {
    InboundType.WORLD_UPDATE: GameMessageHandlers.handle_world_update,
    InboundType.PLAYER_JOINED: GameMessageHandlers.handle_player_joined,
    InboundType.PLAYER_DIED: GameMessageHandlers.handle_player_died,
}


class TypedMessageDispatcher:
    """Routes synced-phase envelopes to HANDLER_REGISTRY by their discriminant."""

    def __init__(self, store: WorldStateStore,
                 registry: Optional[Dict[InboundType, MessageHandler]] = None) -> None:
        self.store = store
        self.registry = HANDLER_REGISTRY if registry is None else registry

    def dispatch(self, envelope: InboundEnvelope) -> bool:
        """
        Apply one typed envelope.

        Returns True when a handler ran. Unknown types are ignored so newer
        servers can add messages without breaking older clients.

        Raises:
            ProtocolViolation: the envelope has no discriminant, or a
                handler rejected its payload
        """
        if not envelope.is_typed:
            raise ProtocolViolation(
                f"Expected a typed envelope after bootstrap, got {envelope.describe()}",
                envelope=envelope,
            )

        if not InboundType.is_valid(envelope.type):
            logger.debug("Ignoring unknown message type %s", envelope.type)
            return False

        msg_type = InboundType.from_string(envelope.type)
        handler = self.registry.get(msg_type)
        if handler is None:
            logger.debug("No handler registered for %s", msg_type.value)
            return False

        log_protocol_message(logger, "debug", "Dispatching", envelope=envelope.value)
        handler(self.store, envelope)
        return True
