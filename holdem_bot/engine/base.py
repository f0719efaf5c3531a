"""Rules engine interface.

The session layer treats the game state as opaque: it only ever passes it
back into the engine. Everything that knows about betting rounds, blinds or
hand strength sits behind this protocol.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from holdem_bot.game.types import ActionType, ShowdownHand, TableView, TerminalKind


class RulesEngine(Protocol):
    """Decision function consumed by the turn loop and the command router."""

    # Lifecycle
    def new_game(
        self,
        big_blind: int,
        players: Sequence[int],
        deck: Sequence[str],
        budgets: Mapping[int, int],
    ) -> Any: ...

    def restart_game(
        self,
        previous: Any,
        players: Sequence[int],
        deck: Sequence[str],
        budgets: Mapping[int, int],
    ) -> Any: ...

    # Queries
    def is_terminal(self, state: Any) -> bool: ...

    def terminal_kind(self, state: Any) -> Optional[TerminalKind]: ...

    def current_actor(self, state: Any) -> Optional[int]: ...

    def legal_moves(self, state: Any) -> set[ActionType]: ...

    def minimum_raise(self, state: Any) -> int: ...

    def maximum_bet(self, state: Any) -> int: ...

    def players(self, state: Any) -> list[int]: ...

    def budgets(self, state: Any) -> dict[int, int]: ...

    # Transitions (return the next state)
    def apply_check(self, state: Any) -> Any: ...

    def apply_fold(self, state: Any) -> Any: ...

    def apply_all_in(self, state: Any) -> Any: ...

    def apply_raise(self, state: Any, amount: int) -> Any: ...

    # Rendering views
    def table_view(self, state: Any) -> TableView: ...

    def hole_cards(self, state: Any, user_id: int) -> list[str]: ...

    def payoffs(self, state: Any) -> dict[int, int]: ...

    def showdown_hands(self, state: Any) -> list[ShowdownHand]: ...
