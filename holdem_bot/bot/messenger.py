"""Messaging interface used by the game layer.

Only the operations the session layer needs: post/edit text, add and read
reactions, open a DM channel, and look up the bot's own id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Reactor:
    """A user that reacted to a message."""

    id: int
    bot: bool = False


class Messenger(Protocol):
    async def send_message(self, channel_id: int, content: str) -> int:
        """Post a message and return its id."""
        ...

    async def edit_message(self, channel_id: int, message_id: int, content: str) -> None: ...

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None: ...

    async def get_reactions(
        self,
        channel_id: int,
        message_id: int,
        emoji: str,
        limit: int = 20,
    ) -> list[Reactor]: ...

    async def create_dm(self, user_id: int) -> int:
        """Open (or reuse) a direct-message channel and return its id."""
        ...

    async def get_current_user(self) -> int: ...
