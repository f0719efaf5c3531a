"""Player gathering - fixed-length recruitment window driven by reactions.

The recruitment message gets the join marker from the bot, the window runs
for the whole timeout (no early start), then everyone who added the same
marker is read back. Bot accounts and users already seated in another
session are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from holdem_bot.bot.messenger import Messenger
from holdem_bot.game.manager import SessionManager

logger = logging.getLogger(__name__)


class PlayerGathering:
    """Collects opt-ins for one recruitment message."""

    def __init__(
        self,
        messenger: Messenger,
        manager: SessionManager,
        timeout: float,
        emoji: str,
        limit: int = 20,
        bot_id: Optional[int] = None,
    ):
        self.messenger = messenger
        self.manager = manager
        self.timeout = timeout
        self.emoji = emoji
        self.limit = limit
        self.bot_id = bot_id

    async def gather(self, channel_id: int, message_id: int) -> list[int]:
        """Run the join window on a posted message and return the joined users.

        Order follows the reaction list; duplicates are impossible.
        """
        await self.messenger.add_reaction(channel_id, message_id, self.emoji)

        logger.info(f"[GATHER] Channel {channel_id} recruiting for {self.timeout}s")
        await asyncio.sleep(self.timeout)

        reactors = await self.messenger.get_reactions(
            channel_id, message_id, self.emoji, limit=self.limit
        )
        candidates = [
            r.id for r in reactors
            if not r.bot and r.id != self.bot_id
        ]
        # 다른 게임에 참여 중인 유저 제외
        players = self.manager.filter_unseated(candidates)

        skipped = len(candidates) - len(players)
        logger.info(
            f"[GATHER] Channel {channel_id} window closed: {len(players)} joined"
            + (f", {skipped} already seated elsewhere" if skipped else "")
        )
        return players
