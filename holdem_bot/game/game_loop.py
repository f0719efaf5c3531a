"""Session game loop - serializes the moves of one session.

One loop runs per live session. Each pass registers the session, posts the
table, and either finishes the hand or posts whose turn it is and waits for
exactly one move from the session queue. The engine transition runs
synchronously right after the move is taken off the queue, so the turn has
already advanced before anything else can look at the session.
"""

from __future__ import annotations

import logging
from typing import Any

from holdem_bot.bot import display
from holdem_bot.bot.messenger import Messenger
from holdem_bot.engine.base import RulesEngine
from holdem_bot.game.manager import SessionManager
from holdem_bot.game.session import Session
from holdem_bot.game.types import ActionType, Move, TerminalKind
from holdem_bot.utils.errors import GameError

logger = logging.getLogger(__name__)


class SessionLoop:
    """Turn orchestrator for sessions.

    Features:
    - Applies moves strictly in queue order, one at a time
    - Broadcasts table state and turn prompts after every move
    - Posts the instant-win or showdown result and deregisters the session
    """

    def __init__(
        self,
        engine: RulesEngine,
        messenger: Messenger,
        manager: SessionManager,
    ):
        self.engine = engine
        self.messenger = messenger
        self.manager = manager

    async def run(self, session: Session, *, keep_waiting: bool = False) -> Session:
        """Play the session's hand to the end and return the final session.

        Args:
            session: A session already registered for its channel
            keep_waiting: Hand the channel straight to the waiting set when the
                hand ends (a restart follows), instead of freeing it

        Returns:
            The session holding the terminal state
        """
        channel_id = session.channel_id

        while True:
            self.manager.register(channel_id, session)
            view = self.engine.table_view(session.state)
            await self._broadcast(channel_id, display.game_state_message(view))

            if self.engine.is_terminal(session.state):
                await self._broadcast(channel_id, self._result_message(session.state, view))
                self.manager.remove(channel_id, keep_waiting=keep_waiting)
                logger.info(f"[SESSION] Channel {channel_id} hand finished")
                return session

            legal = [action.value for action in self.engine.legal_moves(session.state)]
            await self._broadcast(channel_id, display.turn_message(view, legal))

            move = await session.moves.get()
            try:
                session.state = self.apply_move(session.state, move)
            except GameError as e:
                logger.warning(f"[SESSION] Channel {channel_id} rejected {move}: {e.code} {e.message}")
            except Exception as e:
                logger.error(
                    f"[SESSION] Channel {channel_id} engine failed on {move}: {type(e).__name__}: {e}"
                )
            else:
                logger.debug(f"[SESSION] Channel {channel_id} applied {move}")

    def apply_move(self, state: Any, move: Move) -> Any:
        """Map a move onto its engine transition."""
        match move.action:
            case ActionType.CHECK | ActionType.CALL:
                return self.engine.apply_check(state)
            case ActionType.ALL_IN:
                return self.engine.apply_all_in(state)
            case ActionType.FOLD:
                return self.engine.apply_fold(state)
            case ActionType.RAISE:
                return self.engine.apply_raise(state, move.amount)
            case _:
                raise ValueError(f"Unknown action: {move.action}")

    def _result_message(self, state: Any, view) -> str:
        payoffs = self.engine.payoffs(state)
        match self.engine.terminal_kind(state):
            case TerminalKind.INSTANT_WIN:
                return display.instant_win_message(view, payoffs)
            case _:
                return display.showdown_message(view, self.engine.showdown_hands(state), payoffs)

    async def _broadcast(self, channel_id: int, content: str) -> None:
        try:
            await self.messenger.send_message(channel_id, content)
        except Exception as e:
            logger.error(f"[SESSION] Broadcast to channel {channel_id} failed: {type(e).__name__}: {e}")
