from __future__ import annotations

from typing import Optional, Union

from client.core.MessageTypes import BOOTSTRAP_PHASES, ConnectionPhase
from client.state import WorldStateStore
from shared.envelope import EnvelopeKind, InboundEnvelope, ProtocolViolation
from shared.log import get_logger

logger = get_logger(__name__)

PlayerId = Union[str, int]


class BootstrapSequencer:
    """
    Two-step handshake run at the start of every connection.

    The server first sends the player's id as a bare value, then the whole
    player table as a bare object. Only after both does the connection
    reach SYNCED and typed messages are accepted.

    A frame of the wrong shape halts the handshake; the connection then
    stays unsynced until it is closed and reopened.
    """

    def __init__(self, store: WorldStateStore) -> None:
        self.store = store
        self.phase = ConnectionPhase.DISCONNECTED
        self.identity: Optional[PlayerId] = None
        self.halted = False

    @property
    def in_progress(self) -> bool:
        return self.phase in BOOTSTRAP_PHASES and not self.halted

    def opened(self) -> None:
        self.phase = ConnectionPhase.AWAITING_IDENTITY
        self.identity = None
        self.halted = False
        logger.debug("Awaiting identity", extra={"phase": self.phase.value})

    def closed(self) -> None:
        self.phase = ConnectionPhase.DISCONNECTED
        self.identity = None
        self.halted = False

    def accept_identity(self, envelope: InboundEnvelope) -> None:
        self._check(ConnectionPhase.AWAITING_IDENTITY, EnvelopeKind.SCALAR, envelope)

        self.identity = envelope.value
        self.phase = ConnectionPhase.AWAITING_SNAPSHOT
        logger.info("Assigned player id", extra={"player_id": self.identity})

    def accept_snapshot(self, envelope: InboundEnvelope) -> None:
        self._check(ConnectionPhase.AWAITING_SNAPSHOT, EnvelopeKind.MAPPING, envelope)

        self.store.replace_all(envelope.value)
        self.phase = ConnectionPhase.SYNCED
        logger.info("Initial snapshot applied (%d players)", len(envelope.value),
                    extra={"player_id": self.identity})

    def _check(self, phase: ConnectionPhase, kind: EnvelopeKind, envelope: InboundEnvelope) -> None:
        if self.halted:
            raise ProtocolViolation(
                f"Bootstrap halted, refusing {envelope.describe()}",
                phase=self.phase.value,
                envelope=envelope,
            )
        if self.phase is not phase:
            self._halt(f"Expected phase {phase.value}, connection is {self.phase.value}", envelope)
        if envelope.kind is not kind:
            self._halt(f"Expected {kind.value} frame during {phase.value}, got {envelope.describe()}", envelope)

    def _halt(self, message: str, envelope: InboundEnvelope) -> None:
        self.halted = True
        logger.error("Bootstrap halted: %s", message, extra={"phase": self.phase.value})
        raise ProtocolViolation(message, phase=self.phase.value, envelope=envelope)
