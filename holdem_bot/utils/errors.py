"""Custom exception classes for game errors.

Provides structured error handling with error codes and user-friendly messages.
None of these are fatal: the command router and the session lifecycle catch
them and turn each into a channel message or a logged no-op.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for game errors."""

    # Channel errors
    CHANNEL_OCCUPIED = "CHANNEL_OCCUPIED"
    CHANNEL_WAITING = "CHANNEL_WAITING"

    # Player errors
    ALREADY_SEATED = "ALREADY_SEATED"

    # Action errors
    INVALID_ACTION = "INVALID_ACTION"
    INVALID_AMOUNT = "INVALID_AMOUNT"

    # Game state errors
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"


class GameError(Exception):
    """Base exception for game-related errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-friendly error message
        details: Additional error details
        recoverable: Whether the error is recoverable
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "errorCode": self.code,
            "errorMessage": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ChannelOccupiedError(GameError):
    """Raised when a game is already running in the channel."""

    def __init__(self, channel_id: int):
        super().__init__(
            code=ErrorCode.CHANNEL_OCCUPIED,
            message="A game is already running in this channel",
            details={"channelId": channel_id},
        )


class ChannelWaitingError(GameError):
    """Raised when the channel is already recruiting players."""

    def __init__(self, channel_id: int):
        super().__init__(
            code=ErrorCode.CHANNEL_WAITING,
            message="This channel is already waiting for players",
            details={"channelId": channel_id},
        )


class AlreadySeatedError(GameError):
    """Raised when user is already seated in another game."""

    def __init__(self, user_id: int):
        super().__init__(
            code=ErrorCode.ALREADY_SEATED,
            message="Already seated in another game",
            details={"userId": user_id},
        )


class InvalidActionError(GameError):
    """Raised when the rules engine refuses an action."""

    def __init__(
        self,
        message: str = "Invalid action",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code=ErrorCode.INVALID_ACTION,
            message=message,
            details=details,
        )


class InvalidAmountError(GameError):
    """Raised when a raise amount is missing, malformed or out of range."""

    def __init__(
        self,
        amount: int | str | None,
        min_amount: int | None = None,
        max_amount: int | None = None,
    ):
        message = f"Invalid amount: {amount}"
        if min_amount is not None:
            message += f", minimum: {min_amount}"
        if max_amount is not None:
            message += f", maximum: {max_amount}"

        super().__init__(
            code=ErrorCode.INVALID_AMOUNT,
            message=message,
            details={
                "amount": amount,
                "minAmount": min_amount,
                "maxAmount": max_amount,
            },
        )


class NotEnoughPlayersError(GameError):
    """Raised when there aren't enough players to start."""

    def __init__(self, current: int, required: int = 2):
        super().__init__(
            code=ErrorCode.NOT_ENOUGH_PLAYERS,
            message=f"Not enough players: {current}/{required}",
            details={"current": current, "required": required},
        )
