"""Session - one running hand bound to a chat channel."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from holdem_bot.game.types import Move

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """A live game in one channel.

    `state` is owned by the rules engine and replaced only by the session's
    own game loop. The move queue holds at most one pending move.
    """

    channel_id: int
    state: Any
    players: frozenset[int]
    buy_in: int
    moves: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=1), repr=False)

    def submit(self, move: Move) -> bool:
        """Hand a validated move to the game loop without waiting.

        Returns False when a move is already pending: it was validated
        against the same turn, so the newer one is stale.
        """
        try:
            self.moves.put_nowait(move)
        except asyncio.QueueFull:
            logger.debug(f"[SESSION] Channel {self.channel_id} already has a pending move, dropped {move}")
            return False
        return True

    def has_player(self, user_id: int) -> bool:
        return user_id in self.players
