from __future__ import annotations
from typing import Any, Callable

from client.core.MessageTypes import OutboundType
from shared.envelope import OutboundEnvelope, create_envelope
from shared.log import get_logger
from shared.utils import is_player_id

logger = get_logger(__name__)

FrameSender = Callable[[str], None]


class ActionCommandEncoder:
    """
    Turns player intents into outbound envelopes.

    Nothing is validated against the local world state: the server decides
    whether a heal or an attack is legal.
    """

    def __init__(self, send: FrameSender) -> None:
        self._send = send

    def heal_self(self) -> OutboundEnvelope:
        return self._emit(create_envelope(OutboundType.HEAL_SELF.value))

    def attack_player(self, target_id: Any) -> OutboundEnvelope:
        if not is_player_id(target_id):
            raise TypeError(f"target must be a player id (str or int), got {type(target_id).__name__}")
        return self._emit(create_envelope(OutboundType.ATTACK_PLAYER.value, target=target_id))

    def _emit(self, envelope: OutboundEnvelope) -> OutboundEnvelope:
        self._send(envelope.to_json())
        logger.debug("Sent %s", envelope.type, extra={"msg_type": envelope.type})
        return envelope
