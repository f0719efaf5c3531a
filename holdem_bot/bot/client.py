"""Discord client - the chat transport for the game layer.

HoldemClient is both the event source (on_message feeds the command router)
and the Messenger the game layer talks back through.
"""

from __future__ import annotations

import logging
from typing import Optional

import discord

from holdem_bot.bot.messenger import Reactor
from holdem_bot.bot.router import CommandRouter
from holdem_bot.config import Settings
from holdem_bot.engine.base import RulesEngine
from holdem_bot.engine.core import PokerKitEngine
from holdem_bot.game.gathering import PlayerGathering
from holdem_bot.game.lifecycle import GameLifecycle
from holdem_bot.game.manager import SessionManager, session_manager
from holdem_bot.utils.async_utils import cancel_task_safe, get_background_tasks

logger = logging.getLogger(__name__)


class HoldemClient(discord.Client):
    """Discord bot hosting Texas Hold'em games in text channels."""

    def __init__(
        self,
        settings: Settings,
        engine: Optional[RulesEngine] = None,
        manager: Optional[SessionManager] = None,
    ) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.reactions = True

        super().__init__(intents=intents)
        self.settings = settings
        self.engine = engine or PokerKitEngine()
        self.manager = manager or session_manager

        self.gathering = PlayerGathering(
            messenger=self,
            manager=self.manager,
            timeout=settings.recruit_timeout_seconds,
            emoji=settings.join_emoji,
            limit=settings.reaction_page_limit,
        )
        self.lifecycle = GameLifecycle(
            engine=self.engine,
            messenger=self,
            manager=self.manager,
            gathering=self.gathering,
        )
        self.router = CommandRouter(
            engine=self.engine,
            messenger=self,
            manager=self.manager,
            lifecycle=self.lifecycle,
            default_buy_in=settings.default_buy_in,
            blind_divisor=settings.blind_divisor,
        )

    # =========================================================================
    # Events
    # =========================================================================

    async def on_ready(self) -> None:
        """Called on every (re)connect; mention registration is idempotent."""
        bot_id = await self.get_current_user()
        self.gathering.bot_id = bot_id
        self.router.register_bot_mentions(bot_id)
        logger.info(f"[DISCORD] Logged in as {self.user} ({bot_id})")

    async def on_message(self, message: discord.Message) -> None:
        if self.user is not None and message.author.id == self.user.id:
            return
        await self.router.handle_message(
            message.content, message.author.id, message.channel.id
        )

    async def close(self) -> None:
        """Stop running games before disconnecting."""
        sessions = self.manager.get_all_sessions()
        if sessions:
            channels = sorted(session.channel_id for session in sessions)
            logger.warning(f"[DISCORD] Shutting down with hands in progress in channels {channels}")

        tasks = get_background_tasks()
        if tasks:
            logger.info(f"[DISCORD] Cancelling {len(tasks)} running game task(s)")
        for task in tasks:
            await cancel_task_safe(task)
        await super().close()

    # =========================================================================
    # Messenger
    # =========================================================================

    async def _channel(self, channel_id: int):
        channel = self.get_channel(channel_id)
        if channel is None:
            channel = await self.fetch_channel(channel_id)
        return channel

    async def send_message(self, channel_id: int, content: str) -> int:
        channel = await self._channel(channel_id)
        message = await channel.send(content)
        return message.id

    async def edit_message(self, channel_id: int, message_id: int, content: str) -> None:
        channel = await self._channel(channel_id)
        await channel.get_partial_message(message_id).edit(content=content)

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        channel = await self._channel(channel_id)
        await channel.get_partial_message(message_id).add_reaction(emoji)

    async def get_reactions(
        self,
        channel_id: int,
        message_id: int,
        emoji: str,
        limit: int = 20,
    ) -> list[Reactor]:
        channel = await self._channel(channel_id)
        message = await channel.fetch_message(message_id)
        for reaction in message.reactions:
            if str(reaction.emoji) == emoji:
                return [
                    Reactor(id=user.id, bot=user.bot)
                    async for user in reaction.users(limit=limit)
                ]
        return []

    async def create_dm(self, user_id: int) -> int:
        user = self.get_user(user_id) or await self.fetch_user(user_id)
        dm = user.dm_channel or await user.create_dm()
        return dm.id

    async def get_current_user(self) -> int:
        if self.user is None:
            raise RuntimeError("Client is not logged in")
        return self.user.id
