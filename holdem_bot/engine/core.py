"""PokerKit wrapper for the rules engine.

Wraps the PokerKit library behind the RulesEngine protocol:
- Every transition returns a new HandState; the input state is never mutated,
  so a refused action leaves the caller's state untouched
- Cards come from the deck handed in by the caller (hole, burn and board),
  which keeps hands reproducible in tests
- Players with an empty bankroll sit the hand out but keep their seat
"""

from __future__ import annotations

import copy
import logging
import random
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from pokerkit import Automation, NoLimitTexasHoldem
from pokerkit.state import State as PKState

from holdem_bot.game.types import (
    ActionType,
    SeatView,
    ShowdownHand,
    TableView,
    TerminalKind,
)
from holdem_bot.utils.errors import InvalidActionError, NotEnoughPlayersError

logger = logging.getLogger(__name__)

RANKS = "23456789TJQKA"
SUITS = "cdhs"


def standard_deck() -> list[str]:
    """52 cards in PokerKit notation ('As', 'Td', ...)."""
    return [rank + suit for rank in RANKS for suit in SUITS]


def shuffled_deck() -> list[str]:
    deck = standard_deck()
    random.shuffle(deck)
    return deck


@dataclass
class HandState:
    """One hand of No-Limit Hold'em plus the table around it."""

    hand_number: int
    small_blind: int
    big_blind: int
    seat_order: list[int]  # every player at the table, clockwise
    button: int
    starting_budgets: dict[int, int]
    dealt: list[int]  # PokerKit player index -> user id
    pk: PKState = field(repr=False)
    deck: list[str] = field(default_factory=list, repr=False)
    hole: dict[int, list[str]] = field(default_factory=dict, repr=False)
    board: list[str] = field(default_factory=list)
    folded: set[int] = field(default_factory=set)

    def index_of(self, user_id: int) -> Optional[int]:
        try:
            return self.dealt.index(user_id)
        except ValueError:
            return None


class PokerKitEngine:
    """RulesEngine implementation backed by PokerKit.

    Raise amounts are "raise to" totals, the same convention PokerKit uses
    for complete_bet_or_raise_to().
    """

    # =========================================================================
    # State Creation
    # =========================================================================

    def new_game(
        self,
        big_blind: int,
        players: Sequence[int],
        deck: Sequence[str],
        budgets: Mapping[int, int],
    ) -> HandState:
        """Start the first hand at a table; the first seat holds the button."""
        seat_order = list(players)
        funded = [p for p in seat_order if budgets.get(p, 0) > 0]
        if len(funded) < 2:
            raise NotEnoughPlayersError(len(funded))

        return self._deal_hand(
            hand_number=1,
            big_blind=big_blind,
            seat_order=seat_order,
            button=funded[0],
            deck=deck,
            budgets=budgets,
        )

    def restart_game(
        self,
        previous: HandState,
        players: Sequence[int],
        deck: Sequence[str],
        budgets: Mapping[int, int],
    ) -> HandState:
        """Start the next hand, moving the button one funded seat clockwise.

        Returning players keep their previous seat order; newcomers are
        seated after them in join order.
        """
        joined = set(players)
        seat_order = [p for p in previous.seat_order if p in joined]
        seat_order += [p for p in players if p not in seat_order]

        funded = [p for p in seat_order if budgets.get(p, 0) > 0]
        if len(funded) < 2:
            raise NotEnoughPlayersError(len(funded))

        button = self._next_button(previous, seat_order, funded)

        return self._deal_hand(
            hand_number=previous.hand_number + 1,
            big_blind=previous.big_blind,
            seat_order=seat_order,
            button=button,
            deck=deck,
            budgets=budgets,
        )

    def _next_button(
        self,
        previous: HandState,
        seat_order: list[int],
        funded: list[int],
    ) -> int:
        # 이전 버튼 다음 좌석부터 시계방향으로 칩이 있는 플레이어를 찾음
        ring = previous.seat_order + [p for p in seat_order if p not in previous.seat_order]
        if previous.button in ring:
            start = ring.index(previous.button)
            for offset in range(1, len(ring) + 1):
                candidate = ring[(start + offset) % len(ring)]
                if candidate in funded:
                    return candidate
        return funded[0]

    def _deal_hand(
        self,
        hand_number: int,
        big_blind: int,
        seat_order: list[int],
        button: int,
        deck: Sequence[str],
        budgets: Mapping[int, int],
    ) -> HandState:
        funded = [p for p in seat_order if budgets.get(p, 0) > 0]
        button_idx = funded.index(button)

        # PokerKit 블라인드 할당 규칙:
        # - 헤즈업: Player 0=BB, Player 1=SB (버튼)
        # - 3명+: Player 0=SB, Player 1=BB, ..., Player N-1=BTN
        if len(funded) == 2:
            dealt = [funded[1 - button_idx], funded[button_idx]]
        else:
            dealt = funded[button_idx + 1:] + funded[:button_idx + 1]

        big_blind = max(big_blind, 1)
        small_blind = max(big_blind // 2, 1)

        pk = NoLimitTexasHoldem.create_state(
            automations=(
                Automation.ANTE_POSTING,
                Automation.BET_COLLECTION,
                Automation.BLIND_OR_STRADDLE_POSTING,
                Automation.HOLE_CARDS_SHOWING_OR_MUCKING,
                Automation.HAND_KILLING,
                Automation.CHIPS_PUSHING,
                Automation.CHIPS_PULLING,
            ),
            ante_trimming_status=True,
            raw_antes=0,
            raw_blinds_or_straddles=(small_blind, big_blind),
            min_bet=big_blind,
            raw_starting_stacks=[budgets[p] for p in dealt],
            player_count=len(dealt),
        )

        state = HandState(
            hand_number=hand_number,
            small_blind=small_blind,
            big_blind=big_blind,
            seat_order=list(seat_order),
            button=button,
            starting_budgets={p: budgets.get(p, 0) for p in seat_order},
            dealt=dealt,
            pk=pk,
            deck=list(deck),
        )

        # Deal hole cards (2 per player, one card per call)
        for _ in range(2 * len(dealt)):
            if pk.can_deal_hole():
                pk.deal_hole(state.deck.pop(0))

        for index, user_id in enumerate(dealt):
            state.hole[user_id] = [repr(c) for c in pk.hole_cards[index]]  # "Ah", "Td"

        self._run_dealing(state)

        logger.info(
            f"[ENGINE] Hand #{hand_number} dealt: players={len(dealt)}, "
            f"blinds={small_blind}/{big_blind}, button={button}"
        )
        return state

    def _run_dealing(self, state: HandState) -> None:
        """Burn and deal board cards until a player has to act or the hand is over."""
        pk = state.pk
        while True:
            if pk.can_burn_card():
                pk.burn_card(state.deck.pop(0))
            elif pk.can_deal_board():
                count = pk.street.board_dealing_count
                cards = [state.deck.pop(0) for _ in range(count)]
                pk.deal_board("".join(cards))
                state.board.extend(cards)
            else:
                return

    # =========================================================================
    # Queries
    # =========================================================================

    def is_terminal(self, state: HandState) -> bool:
        return not state.pk.status

    def terminal_kind(self, state: HandState) -> Optional[TerminalKind]:
        if state.pk.status:
            return None
        remaining = [p for p in state.dealt if p not in state.folded]
        if len(remaining) == 1:
            return TerminalKind.INSTANT_WIN
        return TerminalKind.SHOWDOWN

    def current_actor(self, state: HandState) -> Optional[int]:
        index = state.pk.actor_index
        if index is None:
            return None
        return state.dealt[index]

    def legal_moves(self, state: HandState) -> set[ActionType]:
        pk = state.pk
        if pk.actor_index is None:
            return set()

        moves: set[ActionType] = set()
        if pk.can_fold():
            moves.add(ActionType.FOLD)

        if pk.can_check_or_call():
            call_amount = pk.checking_or_calling_amount or 0
            moves.add(ActionType.CHECK if call_amount == 0 else ActionType.CALL)

        min_raise = pk.min_completion_betting_or_raising_to_amount
        max_raise = pk.max_completion_betting_or_raising_to_amount
        if min_raise is not None and max_raise is not None:
            if pk.can_complete_bet_or_raise_to(min_raise):
                moves.add(ActionType.RAISE)

        if pk.stacks[pk.actor_index] > 0:
            moves.add(ActionType.ALL_IN)

        return moves

    def minimum_raise(self, state: HandState) -> int:
        return state.pk.min_completion_betting_or_raising_to_amount or 0

    def maximum_bet(self, state: HandState) -> int:
        return state.pk.max_completion_betting_or_raising_to_amount or 0

    def players(self, state: HandState) -> list[int]:
        return list(state.seat_order)

    def budgets(self, state: HandState) -> dict[int, int]:
        """Current bankroll of every seated player (final stacks once the hand is over)."""
        result = dict(state.starting_budgets)
        for index, user_id in enumerate(state.dealt):
            result[user_id] = state.pk.stacks[index]
        return result

    # =========================================================================
    # Transitions
    # =========================================================================

    def apply_check(self, state: HandState) -> HandState:
        def act(pk: PKState) -> None:
            if not pk.can_check_or_call():
                raise InvalidActionError("Cannot check or call")
            pk.check_or_call()

        return self._transition(state, act)

    def apply_fold(self, state: HandState) -> HandState:
        folder = self.current_actor(state)

        def act(pk: PKState) -> None:
            if not pk.can_fold():
                raise InvalidActionError("Cannot fold")
            pk.fold()

        new_state = self._transition(state, act)
        new_state.folded.add(folder)
        return new_state

    def apply_all_in(self, state: HandState) -> HandState:
        def act(pk: PKState) -> None:
            max_amount = pk.max_completion_betting_or_raising_to_amount
            if max_amount is not None and pk.can_complete_bet_or_raise_to(max_amount):
                pk.complete_bet_or_raise_to(max_amount)
            elif pk.can_check_or_call():
                # 올인이 콜인 경우
                pk.check_or_call()
            else:
                raise InvalidActionError("Cannot go all-in")

        return self._transition(state, act)

    def apply_raise(self, state: HandState, amount: int) -> HandState:
        def act(pk: PKState) -> None:
            if not pk.can_complete_bet_or_raise_to(amount):
                raise InvalidActionError(f"Cannot raise to {amount}", {"amount": amount})
            pk.complete_bet_or_raise_to(amount)

        return self._transition(state, act)

    def _transition(self, state: HandState, act) -> HandState:
        if not state.pk.status or state.pk.actor_index is None:
            raise InvalidActionError("No player to act")

        new_state = copy.deepcopy(state)
        act(new_state.pk)
        self._run_dealing(new_state)
        return new_state

    # =========================================================================
    # Views
    # =========================================================================

    def table_view(self, state: HandState) -> TableView:
        pk = state.pk
        actor = self.current_actor(state)

        seats: list[SeatView] = []
        for user_id in state.seat_order:
            index = state.index_of(user_id)
            if index is None:
                seats.append({
                    "userId": user_id,
                    "stack": state.starting_budgets.get(user_id, 0),
                    "bet": 0,
                    "status": "sitting_out",
                    "isCurrent": False,
                    "isButton": False,
                })
                continue

            stack = pk.stacks[index]
            if user_id in state.folded:
                status = "folded"
            elif stack == 0:
                status = "all_in"
            else:
                status = "active"

            seats.append({
                "userId": user_id,
                "stack": stack,
                "bet": pk.bets[index] if pk.bets else 0,
                "status": status,
                "isCurrent": user_id == actor,
                "isButton": user_id == state.button,
            })

        collected = sum(pot.amount for pot in pk.pots) if pk.status else 0
        view: TableView = {
            "handNumber": state.hand_number,
            "pot": collected + (sum(pk.bets) if pk.bets else 0),
            "board": list(state.board),
            "seats": seats,
            "currentActor": actor,
        }

        if actor is not None:
            view["callAmount"] = pk.checking_or_calling_amount or 0
            view["minRaise"] = self.minimum_raise(state)
            view["maxBet"] = self.maximum_bet(state)

        return view

    def hole_cards(self, state: HandState, user_id: int) -> list[str]:
        return list(state.hole.get(user_id, []))

    def payoffs(self, state: HandState) -> dict[int, int]:
        """Net result of the hand per dealt player (final stack - starting stack)."""
        return {
            user_id: state.pk.stacks[index] - state.starting_budgets[user_id]
            for index, user_id in enumerate(state.dealt)
        }

    def showdown_hands(self, state: HandState) -> list[ShowdownHand]:
        if self.terminal_kind(state) is not TerminalKind.SHOWDOWN:
            return []
        return [
            {"userId": user_id, "holeCards": self.hole_cards(state, user_id)}
            for user_id in state.dealt
            if user_id not in state.folded
        ]
