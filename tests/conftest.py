"""Shared test fixtures: an in-memory messenger and a scripted rules engine."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Sequence

import pytest

from holdem_bot.bot.messenger import Reactor
from holdem_bot.game.gathering import PlayerGathering
from holdem_bot.game.lifecycle import GameLifecycle
from holdem_bot.game.manager import SessionManager
from holdem_bot.game.session import Session
from holdem_bot.game.types import ActionType, TableView, TerminalKind
from holdem_bot.utils.errors import InvalidActionError, NotEnoughPlayersError

BOT_ID = 999
CHANNEL_ID = 100
OTHER_CHANNEL_ID = 200

ALICE = 1
BOB = 2
CAROL = 3
DAVE = 4


# =============================================================================
# Fake rules engine
# =============================================================================


@dataclass(frozen=True)
class FakeState:
    """Heads-up style hand: the actor rotates, a fold hands the folder's
    bankroll to the others, and the hand goes to showdown after
    `moves_left` non-fold moves."""

    players: tuple[int, ...]
    budgets: dict
    actor_index: int = 0
    folded: frozenset = frozenset()
    moves_left: int = 4
    terminal: Optional[TerminalKind] = None
    hand_number: int = 1


class FakeEngine:
    """Deterministic RulesEngine that records every call it receives."""

    def __init__(self):
        self.applied: list[tuple[int, str, Optional[int]]] = []
        self.new_game_calls: list[dict] = []
        self.restart_calls: list[dict] = []
        self.legal = {ActionType.FOLD, ActionType.CALL, ActionType.RAISE, ActionType.ALL_IN}
        self.min_raise = 20
        self.max_bet = 100
        self.moves_per_hand = 4

    # Lifecycle
    def new_game(self, big_blind, players, deck, budgets) -> FakeState:
        self.new_game_calls.append({
            "big_blind": big_blind,
            "players": list(players),
            "deck": list(deck),
            "budgets": dict(budgets),
        })
        return self._make(players, budgets, 1)

    def restart_game(self, previous, players, deck, budgets) -> FakeState:
        self.restart_calls.append({
            "previous": previous,
            "players": list(players),
            "budgets": dict(budgets),
        })
        return self._make(players, budgets, previous.hand_number + 1)

    def _make(self, players, budgets, hand_number) -> FakeState:
        funded = [p for p in players if budgets.get(p, 0) > 0]
        if len(funded) < 2:
            raise NotEnoughPlayersError(len(funded))
        return FakeState(
            players=tuple(players),
            budgets=dict(budgets),
            moves_left=self.moves_per_hand,
            hand_number=hand_number,
        )

    # Queries
    def is_terminal(self, state: FakeState) -> bool:
        return state.terminal is not None

    def terminal_kind(self, state: FakeState) -> Optional[TerminalKind]:
        return state.terminal

    def current_actor(self, state: FakeState) -> Optional[int]:
        if state.terminal is not None:
            return None
        return state.players[state.actor_index]

    def legal_moves(self, state: FakeState) -> set[ActionType]:
        if state.terminal is not None:
            return set()
        return set(self.legal)

    def minimum_raise(self, state: FakeState) -> int:
        return self.min_raise

    def maximum_bet(self, state: FakeState) -> int:
        return self.max_bet

    def players(self, state: FakeState) -> list[int]:
        return list(state.players)

    def budgets(self, state: FakeState) -> dict[int, int]:
        return dict(state.budgets)

    # Transitions
    def apply_check(self, state: FakeState) -> FakeState:
        return self._advance(state, "check")

    def apply_all_in(self, state: FakeState) -> FakeState:
        return self._advance(state, "all-in")

    def apply_raise(self, state: FakeState, amount: int) -> FakeState:
        if amount > self.max_bet:
            raise InvalidActionError(f"Cannot raise to {amount}")
        return self._advance(state, "raise", amount)

    def apply_fold(self, state: FakeState) -> FakeState:
        actor = self.current_actor(state)
        self.applied.append((actor, "fold", None))
        folded = state.folded | {actor}
        remaining = [p for p in state.players if p not in folded]
        budgets = dict(state.budgets)
        budgets[remaining[0]] += budgets[actor]
        budgets[actor] = 0
        if len(remaining) == 1:
            return replace(state, folded=folded, budgets=budgets, terminal=TerminalKind.INSTANT_WIN)
        return replace(
            state,
            folded=folded,
            budgets=budgets,
            actor_index=self._next_index(state, folded),
        )

    def _advance(self, state: FakeState, name: str, amount: Optional[int] = None) -> FakeState:
        self.applied.append((self.current_actor(state), name, amount))
        moves_left = state.moves_left - 1
        if moves_left == 0:
            return replace(state, moves_left=0, terminal=TerminalKind.SHOWDOWN)
        return replace(
            state,
            moves_left=moves_left,
            actor_index=self._next_index(state, state.folded),
        )

    @staticmethod
    def _next_index(state: FakeState, folded) -> int:
        index = state.actor_index
        for _ in range(len(state.players)):
            index = (index + 1) % len(state.players)
            if state.players[index] not in folded:
                return index
        return index

    # Views
    def table_view(self, state: FakeState) -> TableView:
        actor = self.current_actor(state)
        return {
            "handNumber": state.hand_number,
            "pot": 0,
            "board": [],
            "seats": [
                {
                    "userId": p,
                    "stack": state.budgets.get(p, 0),
                    "bet": 0,
                    "status": "folded" if p in state.folded else "active",
                    "isCurrent": p == actor,
                    "isButton": i == 0,
                }
                for i, p in enumerate(state.players)
            ],
            "currentActor": actor,
        }

    def hole_cards(self, state: FakeState, user_id: int) -> list[str]:
        return ["As", "Kd"]

    def payoffs(self, state: FakeState) -> dict[int, int]:
        return {p: 0 for p in state.players}

    def showdown_hands(self, state: FakeState) -> list:
        return [{"userId": p, "holeCards": ["As", "Kd"]} for p in state.players if p not in state.folded]


# =============================================================================
# Fake messenger
# =============================================================================


@dataclass
class FakeMessenger:
    """Records outbound traffic; each get_reactions() call pops one scripted round.

    Rounds listed under a channel in `channel_rounds` serve that channel only.
    """

    reaction_rounds: list[list[Reactor]] = field(default_factory=list)
    channel_rounds: dict[int, list[list[Reactor]]] = field(default_factory=dict)
    sent: list[tuple[int, str]] = field(default_factory=list)
    edits: list[tuple[int, int, str]] = field(default_factory=list)
    reactions_added: list[tuple[int, int, str]] = field(default_factory=list)
    dms: list[int] = field(default_factory=list)
    _next_id: int = 1000

    async def send_message(self, channel_id: int, content: str) -> int:
        self._next_id += 1
        self.sent.append((channel_id, content))
        return self._next_id

    async def edit_message(self, channel_id: int, message_id: int, content: str) -> None:
        self.edits.append((channel_id, message_id, content))

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        self.reactions_added.append((channel_id, message_id, emoji))

    async def get_reactions(self, channel_id, message_id, emoji, limit=20) -> list[Reactor]:
        rounds = self.channel_rounds.get(channel_id, self.reaction_rounds)
        if not rounds:
            return []
        return rounds.pop(0)[:limit]

    async def create_dm(self, user_id: int) -> int:
        self.dms.append(user_id)
        return 50_000 + user_id

    async def get_current_user(self) -> int:
        return BOT_ID

    def messages_to(self, channel_id: int) -> list[str]:
        return [content for cid, content in self.sent if cid == channel_id]


def reactors(*user_ids: int, with_bot: bool = True) -> list[Reactor]:
    """Reaction list as Discord returns it: the bot's own marker first."""
    result = [Reactor(id=BOT_ID, bot=True)] if with_bot else []
    return result + [Reactor(id=u) for u in user_ids]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until predicate() holds."""
    async def poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), timeout)


def make_session(
    engine: FakeEngine,
    players: Sequence[int] = (ALICE, BOB),
    channel_id: int = CHANNEL_ID,
    buy_in: int = 100,
) -> Session:
    state = engine.new_game(1, players, [], {p: buy_in for p in players})
    return Session(
        channel_id=channel_id,
        state=state,
        players=frozenset(players),
        buy_in=buy_in,
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture
def manager() -> SessionManager:
    manager = SessionManager()
    yield manager
    manager.clear_all()


@pytest.fixture
def gathering(messenger: FakeMessenger, manager: SessionManager) -> PlayerGathering:
    return PlayerGathering(
        messenger=messenger,
        manager=manager,
        timeout=0,
        emoji="\U0001f91d",
        bot_id=BOT_ID,
    )


@pytest.fixture
def lifecycle(engine, messenger, manager, gathering) -> GameLifecycle:
    return GameLifecycle(
        engine=engine,
        messenger=messenger,
        manager=manager,
        gathering=gathering,
        deck_factory=lambda: ["As", "Kd"],
    )
