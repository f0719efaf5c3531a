"""Type definitions for the game module.

Provides:
- Player actions (ActionType, Move) submitted into a session's turn loop
- Parsed chat commands (CommandKind, Command)
- Read-only table snapshots produced by the rules engine for rendering
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, NotRequired, Optional, TypedDict


# =============================================================================
# Moves
# =============================================================================


class ActionType(str, Enum):
    """Action names as the rules engine reports them and players type them."""

    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    ALL_IN = "all-in"
    RAISE = "raise"


@dataclass(frozen=True)
class Move:
    """A single player action.

    CHECK and CALL drive the same engine transition; `amount` is only set
    for RAISE and is always positive there.
    """

    action: ActionType
    amount: Optional[int] = None

    def __post_init__(self):
        if self.action is ActionType.RAISE:
            if self.amount is None or self.amount <= 0:
                raise ValueError(f"raise requires a positive amount, got {self.amount!r}")
        elif self.amount is not None:
            raise ValueError(f"{self.action.value} takes no amount")


class TerminalKind(str, Enum):
    """How a hand ended."""

    INSTANT_WIN = "instant_win"  # 한 명 빼고 전원 폴드
    SHOWDOWN = "showdown"


# =============================================================================
# Commands
# =============================================================================


class CommandKind(str, Enum):
    """Closed set of commands the router dispatches on."""

    START = "start"
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    ALL_IN = "all-in"
    RAISE = "raise"
    INFO = "info"
    UNKNOWN = "unknown"

    @property
    def action(self) -> Optional[ActionType]:
        """The move this command submits, or None for non-move commands."""
        try:
            return ActionType(self.value)
        except ValueError:
            return None


@dataclass(frozen=True)
class Command:
    """Parsed chat input. Ephemeral, never stored."""

    name: str
    args: tuple[str, ...]
    user_id: int
    channel_id: int
    kind: CommandKind = field(default=CommandKind.UNKNOWN)


# =============================================================================
# Table snapshots (rendering only)
# =============================================================================


class SeatView(TypedDict):
    """One player's public state during a hand."""

    userId: int
    stack: int
    bet: int
    status: Literal["active", "folded", "all_in", "sitting_out"]
    isCurrent: bool
    isButton: bool


class TableView(TypedDict):
    """Public table state."""

    handNumber: int
    pot: int
    board: list[str]
    seats: list[SeatView]
    currentActor: Optional[int]
    callAmount: NotRequired[int]
    minRaise: NotRequired[int]
    maxBet: NotRequired[int]


class ShowdownHand(TypedDict):
    """Hole cards revealed at showdown."""

    userId: int
    holeCards: list[str]
    handName: NotRequired[str]
