from __future__ import annotations

from enum import Enum
from typing import Set


class InboundType(str, Enum):
    """Discriminants of typed envelopes sent by the game server."""

    WORLD_UPDATE = "WorldUpdate"      # full replacement of the player table
    PLAYER_JOINED = "PlayerJoined"    # reserved, no state change yet
    PLAYER_DIED = "PlayerDied"        # reserved, no state change yet

    @classmethod
    def from_string(cls, value: str) -> InboundType:
        """Convert string to InboundType enum, raise ValueError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown message type: {value}")

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if string is a known inbound message type."""
        try:
            cls(value)
            return True
        except ValueError:
            return False


class OutboundType(str, Enum):
    """Discriminants of action commands sent by the client."""

    HEAL_SELF = "HealSelf"
    ATTACK_PLAYER = "AttackPlayer"


class ConnectionPhase(str, Enum):
    """Connection lifecycle. Advances forward only, resets on close."""

    DISCONNECTED = "disconnected"
    AWAITING_IDENTITY = "awaiting_identity"
    AWAITING_SNAPSHOT = "awaiting_snapshot"
    SYNCED = "synced"


# Phases handled by the bootstrap sequencer
BOOTSTRAP_PHASES: Set[ConnectionPhase] = {
    ConnectionPhase.AWAITING_IDENTITY,
    ConnectionPhase.AWAITING_SNAPSHOT,
}
