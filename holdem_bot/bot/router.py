"""Command router - turns chat text into game actions.

The first whitespace-delimited token picks the command (case-insensitive).
Move commands are filtered silently: no session in the channel, not the
sender's turn, or an action the engine does not offer right now all drop the
command without a reply. A malformed or out-of-range raise is the only move
rejection that is answered. Unknown commands are ignored.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from holdem_bot.bot import display
from holdem_bot.bot.messenger import Messenger
from holdem_bot.engine.base import RulesEngine
from holdem_bot.game.lifecycle import GameLifecycle
from holdem_bot.game.manager import SessionManager
from holdem_bot.game.session import Session
from holdem_bot.game.types import ActionType, Command, CommandKind, Move
from holdem_bot.logging_config import bind_context, get_logger
from holdem_bot.utils.async_utils import create_safe_task
from holdem_bot.utils.errors import (
    AlreadySeatedError,
    ChannelOccupiedError,
    ChannelWaitingError,
    InvalidAmountError,
)

logger = get_logger(__name__)

COMMANDS: dict[str, CommandKind] = {
    "holdem!": CommandKind.START,
    "fold": CommandKind.FOLD,
    "check": CommandKind.CHECK,
    "call": CommandKind.CALL,
    "all-in": CommandKind.ALL_IN,
    "raise": CommandKind.RAISE,
}

INT_PATTERN = re.compile(r"[+-]?\d+", re.ASCII)


def try_parse_int(value: str) -> Optional[int]:
    if not INT_PATTERN.fullmatch(value):
        return None
    return int(value)


class CommandRouter:
    """Parses chat messages and dispatches them to the game layer."""

    def __init__(
        self,
        engine: RulesEngine,
        messenger: Messenger,
        manager: SessionManager,
        lifecycle: GameLifecycle,
        default_buy_in: int,
        blind_divisor: int = 100,
    ):
        self.engine = engine
        self.messenger = messenger
        self.manager = manager
        self.lifecycle = lifecycle
        self.default_buy_in = default_buy_in
        self.blind_divisor = blind_divisor
        self._commands = dict(COMMANDS)

    def register_bot_mentions(self, bot_id: int) -> None:
        """Answer `<@bot>` and `<@!bot>` with the help message."""
        mention = display.user_mention(bot_id)
        self._commands[mention] = CommandKind.INFO
        self._commands[mention.replace("@", "@!")] = CommandKind.INFO

    # =========================================================================
    # Parsing
    # =========================================================================

    def parse(self, content: str, user_id: int, channel_id: int) -> Optional[Command]:
        tokens = content.split()
        if not tokens:
            return None
        name = tokens[0].lower()
        return Command(
            name=name,
            args=tuple(tokens[1:]),
            user_id=user_id,
            channel_id=channel_id,
            kind=self._commands.get(name, CommandKind.UNKNOWN),
        )

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle_message(self, content: str, user_id: int, channel_id: int) -> None:
        """Entry point for every inbound chat message. Never raises."""
        command = self.parse(content, user_id, channel_id)
        if command is None:
            return

        bind_context(channel_id=channel_id, user_id=user_id)
        try:
            await self.dispatch(command)
        except Exception as e:
            logger.error(
                "command_failed",
                command=command.name,
                error=f"{type(e).__name__}: {e}",
                exc_info=e,
            )

    async def dispatch(self, command: Command) -> None:
        match command.kind:
            case CommandKind.START:
                await self.handle_start(command)
            case CommandKind.FOLD | CommandKind.CHECK | CommandKind.CALL | CommandKind.ALL_IN:
                await self.handle_move(command)
            case CommandKind.RAISE:
                await self.handle_raise(command)
            case CommandKind.INFO:
                await self.messenger.send_message(
                    command.channel_id, display.info_message(command.user_id)
                )
            case _:
                # 알 수 없는 명령은 무시
                pass

    # =========================================================================
    # Moves
    # =========================================================================

    def valid_session(self, command: Command) -> Optional[Session]:
        """The session the command may act on, or None if it must be dropped."""
        session = self.manager.get_session(command.channel_id)
        if session is None:
            return None
        if self.engine.current_actor(session.state) != command.user_id:
            return None
        if command.kind.action not in self.engine.legal_moves(session.state):
            return None
        return session

    async def handle_move(self, command: Command) -> None:
        session = self.valid_session(command)
        if session is None:
            logger.debug("move_ignored", command=command.name)
            return
        if session.submit(Move(command.kind.action)):
            logger.info("move_submitted", action=command.name)

    async def handle_raise(self, command: Command) -> None:
        session = self.valid_session(command)
        if session is None:
            logger.debug("move_ignored", command=command.name)
            return

        try:
            amount = self.parse_raise_amount(session, command.args)
        except InvalidAmountError as e:
            logger.info("invalid_raise", **e.details)
            await self.messenger.send_message(
                command.channel_id,
                display.invalid_raise_message(
                    e.details["minAmount"], e.details["maxAmount"]
                ),
            )
            return

        if session.submit(Move(ActionType.RAISE, amount)):
            logger.info("move_submitted", action=command.name, amount=amount)

    def parse_raise_amount(self, session: Session, args: Sequence[str]) -> int:
        """Raise amount within [minimum raise, maximum bet] for the current state.

        Raises:
            InvalidAmountError: missing, non-integer or out-of-range amount
        """
        minimum = self.engine.minimum_raise(session.state)
        maximum = self.engine.maximum_bet(session.state)

        raw = args[0] if args else None
        amount = try_parse_int(raw) if raw is not None else None
        if amount is None or amount <= 0 or not minimum <= amount <= maximum:
            raise InvalidAmountError(raw, minimum, maximum)
        return amount

    # =========================================================================
    # Game start
    # =========================================================================

    async def handle_start(self, command: Command) -> None:
        channel_id, user_id = command.channel_id, command.user_id
        try:
            self.manager.claim_channel(channel_id, user_id)
        except ChannelOccupiedError:
            await self.messenger.send_message(
                channel_id, display.channel_occupied_message(channel_id, user_id)
            )
            return
        except ChannelWaitingError:
            await self.messenger.send_message(
                channel_id, display.channel_waiting_message(channel_id, user_id)
            )
            return
        except AlreadySeatedError:
            await self.messenger.send_message(
                channel_id, display.already_ingame_message(user_id)
            )
            return

        buy_in = self.parse_buy_in(command.args)
        big_blind = max(buy_in // self.blind_divisor, 1)
        logger.info("game_requested", buy_in=buy_in, big_blind=big_blind)

        create_safe_task(
            self.lifecycle.start_new_game(channel_id, user_id, buy_in, big_blind),
            name=f"holdem-channel-{channel_id}",
        )

    def parse_buy_in(self, args: Sequence[str]) -> int:
        """Optional first argument; anything but a positive integer means the default."""
        if args:
            buy_in = try_parse_int(args[0])
            if buy_in is not None and buy_in > 0:
                return buy_in
        return self.default_buy_in
