from __future__ import annotations
import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from shared.log import get_logger

logger = get_logger(__name__)

PlayerRecord = Any
WorldState = Dict[str, PlayerRecord]
StateSubscriber = Callable[[WorldState], None]


@dataclass
class WorldStateStore:
    """
    Local mirror of the server's player table.

    Every update is a wholesale replacement; the server alone decides which
    players exist, so there is no merge or removal logic here.
    """
    players: WorldState = field(default_factory=dict)
    stale: bool = False
    _subscribers: List[StateSubscriber] = field(default_factory=list, repr=False)

    def replace_all(self, players: Mapping[str, PlayerRecord]) -> None:
        self.players = copy.deepcopy(dict(players))
        self.stale = False
        logger.debug("World state replaced (%d players)", len(self.players))
        self._publish()

    def read(self) -> WorldState:
        # Readers get their own copy; records are mutable JSON values
        return copy.deepcopy(self.players)

    def get(self, player_id: Any) -> Optional[PlayerRecord]:
        # JSON object keys are strings, numeric ids arrive as ints
        if player_id in self.players:
            return copy.deepcopy(self.players[player_id])
        return copy.deepcopy(self.players.get(str(player_id)))

    def mark_stale(self) -> None:
        self.stale = True
        self._publish()

    def subscribe(self, callback: StateSubscriber) -> Callable[[], None]:
        """Register a callback run after every change; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self.read())
            except Exception as e:
                logger.error("State subscriber %r failed: %s", callback, e, exc_info=True)
