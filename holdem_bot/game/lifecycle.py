"""Game lifecycle - recruitment, play and restart for one channel.

A channel cycles waiting -> session -> waiting for as long as every join
window brings at least two players. Bankrolls carry over from hand to hand;
newcomers buy in with the amount the first hand was started with.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence

from holdem_bot.bot import display
from holdem_bot.bot.messenger import Messenger
from holdem_bot.engine.base import RulesEngine
from holdem_bot.engine.core import shuffled_deck
from holdem_bot.game.game_loop import SessionLoop
from holdem_bot.game.gathering import PlayerGathering
from holdem_bot.game.manager import SessionManager
from holdem_bot.game.session import Session
from holdem_bot.utils.errors import GameError

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2

StartFn = Callable[[Sequence[int]], Any]


def calculate_budgets(
    players: Sequence[int],
    buy_in: int,
    previous_budgets: Mapping[int, int],
) -> dict[int, int]:
    """Every player starts from `buy_in` unless they carry a previous balance.

    Previous balances win, including zero.
    """
    budgets = {player: buy_in for player in players}
    budgets.update(previous_budgets)
    return budgets


class GameLifecycle:
    """Runs the recruit/play/restart cycle of a channel."""

    def __init__(
        self,
        engine: RulesEngine,
        messenger: Messenger,
        manager: SessionManager,
        gathering: PlayerGathering,
        session_loop: Optional[SessionLoop] = None,
        deck_factory: Callable[[], list[str]] = shuffled_deck,
    ):
        self.engine = engine
        self.messenger = messenger
        self.manager = manager
        self.gathering = gathering
        self.session_loop = session_loop or SessionLoop(engine, messenger, manager)
        self.deck_factory = deck_factory

    @property
    def timeout(self) -> float:
        return self.gathering.timeout

    async def start_new_game(
        self,
        channel_id: int,
        user_id: int,
        buy_in: int,
        big_blind: int,
    ) -> None:
        """Recruit for a fresh table. The channel must already be claimed (waiting)."""
        def start_fn(players: Sequence[int]) -> Any:
            return self.engine.new_game(
                big_blind,
                players,
                self.deck_factory(),
                calculate_budgets(players, buy_in, {}),
            )

        await self.run(
            channel_id,
            buy_in,
            display.new_game_message(user_id, self.timeout, buy_in),
            start_fn,
        )

    async def run(
        self,
        channel_id: int,
        buy_in: int,
        start_message: str,
        start_fn: StartFn,
    ) -> None:
        """Drive the channel until a join window brings fewer than two players.

        Nothing raised here escapes: the channel is released and the error
        is logged.
        """
        session: Optional[Session] = None
        try:
            while True:
                session = await self._recruit(channel_id, buy_in, start_message, start_fn)
                if session is None:
                    return

                await self.notify_players(session)
                result = await self.session_loop.run(session, keep_waiting=True)

                previous_state = result.state
                previous_budgets = self.engine.budgets(previous_state)
                start_message = display.restart_game_message(previous_budgets, self.timeout, buy_in)

                def start_fn(players: Sequence[int], _state=previous_state, _budgets=previous_budgets) -> Any:
                    return self.engine.restart_game(
                        _state,
                        players,
                        self.deck_factory(),
                        calculate_budgets(players, buy_in, _budgets),
                    )

                logger.info(f"[LIFECYCLE] Channel {channel_id} restarting")
        except Exception as e:
            logger.error(
                f"[LIFECYCLE] Channel {channel_id} stopped: {type(e).__name__}: {e}",
                exc_info=e,
            )
        finally:
            # 예외로 종료돼도 채널이 잠기지 않도록 정리
            self.manager.unmark_waiting(channel_id)
            if session is not None and self.manager.get_session(channel_id) is session:
                self.manager.remove(channel_id)

    async def _recruit(
        self,
        channel_id: int,
        buy_in: int,
        message: str,
        start_fn: StartFn,
    ) -> Optional[Session]:
        """Post the join message, run the window and register the new session.

        Returns None (channel released) when fewer than two players joined.
        """
        message_id = await self.messenger.send_message(channel_id, message)
        players = await self.gathering.gather(channel_id, message_id)

        # gather() 반환부터 promote()까지 await 없음: 좌석 검사와 등록이 원자적
        session: Optional[Session] = None
        if len(players) >= MIN_PLAYERS:
            try:
                state = start_fn(players)
                session = Session(
                    channel_id=channel_id,
                    state=state,
                    players=frozenset(players),
                    buy_in=buy_in,
                )
                self.manager.promote(channel_id, session)
            except GameError as e:
                logger.info(f"[LIFECYCLE] Channel {channel_id} cannot start: {e.code} {e.message}")
                session = None

        if session is None:
            self.manager.unmark_waiting(channel_id)
            logger.info(f"[LIFECYCLE] Channel {channel_id} idle: {len(players)} player(s) joined")
            await self.messenger.edit_message(
                channel_id, message_id, display.not_enough_players_message()
            )
        return session

    async def notify_players(self, session: Session) -> None:
        """DM every player their hole cards."""
        for player in session.players:
            try:
                dm_id = await self.messenger.create_dm(player)
                await self.messenger.send_message(
                    dm_id,
                    display.player_notification_message(
                        session.channel_id,
                        self.engine.hole_cards(session.state, player),
                    ),
                )
            except Exception as e:
                logger.warning(f"[LIFECYCLE] Could not DM user {player}: {type(e).__name__}: {e}")
