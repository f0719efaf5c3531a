"""Plain-text rendering of everything the bot posts.

Pure functions over engine views, no I/O. Mentions use Discord markup.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from holdem_bot.game.types import SeatView, ShowdownHand, TableView

HANDSHAKE_EMOJI = "\U0001f91d"

SUIT_SYMBOLS = {"c": "♣", "d": "♦", "h": "♥", "s": "♠"}
RANK_NAMES = {"T": "10"}

STATUS_LABELS = {
    "active": "",
    "folded": " (folded)",
    "all_in": " (all-in)",
    "sitting_out": " (sitting out)",
}


def user_mention(user_id: int) -> str:
    return f"<@{user_id}>"


def channel_mention(channel_id: int) -> str:
    return f"<#{channel_id}>"


def format_card(card: str) -> str:
    """'Th' -> '10♥'"""
    rank, suit = card[:-1], card[-1]
    return f"{RANK_NAMES.get(rank, rank)}{SUIT_SYMBOLS.get(suit, suit)}"


def format_cards(cards: Iterable[str]) -> str:
    rendered = " ".join(format_card(c) for c in cards)
    return rendered or "-"


def _seat_line(seat: SeatView) -> str:
    marker = "▶ " if seat["isCurrent"] else "  "
    button = " [D]" if seat["isButton"] else ""
    bet = f", bet {seat['bet']}" if seat["bet"] else ""
    return (
        f"{marker}{user_mention(seat['userId'])}{button}: "
        f"{seat['stack']} chips{bet}{STATUS_LABELS[seat['status']]}"
    )


# =============================================================================
# Game flow
# =============================================================================


def game_state_message(view: TableView) -> str:
    lines = [
        f"**Hand #{view['handNumber']}**",
        f"Board: {format_cards(view['board'])}",
        f"Pot: {view['pot']}",
    ]
    lines.extend(_seat_line(seat) for seat in view["seats"])
    return "\n".join(lines)


def turn_message(view: TableView, legal: Iterable[str]) -> str:
    actor = view["currentActor"]
    legal = sorted(legal)
    options = ", ".join(f"`{name}`" for name in legal)
    lines = [f"{user_mention(actor)}, it's your turn. Options: {options}"]
    call_amount = view.get("callAmount", 0)
    if call_amount:
        lines.append(f"To call: {call_amount}")
    if "raise" in legal:
        lines.append(f"Raise to between {view.get('minRaise', 0)} and {view.get('maxBet', 0)}")
    return "\n".join(lines)


def instant_win_message(view: TableView, payoffs: Mapping[int, int]) -> str:
    winner = max(payoffs, key=payoffs.get)
    return (
        f"Everybody else folded. {user_mention(winner)} wins "
        f"{max(payoffs[winner], 0)} chips!"
    )


def showdown_message(
    view: TableView,
    hands: Sequence[ShowdownHand],
    payoffs: Mapping[int, int],
) -> str:
    lines = ["**Showdown!**", f"Board: {format_cards(view['board'])}"]
    for hand in hands:
        lines.append(f"{user_mention(hand['userId'])}: {format_cards(hand['holeCards'])}")
    winners = [user_id for user_id, amount in payoffs.items() if amount > 0]
    for user_id in winners:
        lines.append(f"{user_mention(user_id)} wins {payoffs[user_id]} chips!")
    if not winners:
        lines.append("The pot is split.")
    return "\n".join(lines)


def player_notification_message(channel_id: int, hole_cards: Sequence[str]) -> str:
    return (
        f"Your cards for the game in {channel_mention(channel_id)}: "
        f"{format_cards(hole_cards)}"
    )


# =============================================================================
# Recruitment
# =============================================================================


def new_game_message(user_id: int, timeout: float, buy_in: int) -> str:
    return (
        f"{user_mention(user_id)} wants to play Texas Hold'em! "
        f"React with {HANDSHAKE_EMOJI} within {timeout:g} seconds to join. "
        f"Buy-in: {buy_in} chips."
    )


def restart_game_message(budgets: Mapping[int, int], timeout: float, buy_in: int) -> str:
    lines = ["The hand is over. Current bankrolls:"]
    lines.extend(
        f"{user_mention(user_id)}: {budget}"
        for user_id, budget in sorted(budgets.items(), key=lambda kv: -kv[1])
    )
    lines.append(
        f"React with {HANDSHAKE_EMOJI} within {timeout:g} seconds to play the next hand. "
        f"New players buy in with {buy_in} chips."
    )
    return "\n".join(lines)


def not_enough_players_message() -> str:
    return "Not enough players."


# =============================================================================
# Rejections and help
# =============================================================================


def channel_occupied_message(channel_id: int, user_id: int) -> str:
    return f"{user_mention(user_id)}, a game is already running in {channel_mention(channel_id)}."


def channel_waiting_message(channel_id: int, user_id: int) -> str:
    return (
        f"{user_mention(user_id)}, {channel_mention(channel_id)} is already waiting for players. "
        f"React with {HANDSHAKE_EMOJI} to join."
    )


def already_ingame_message(user_id: int) -> str:
    return f"{user_mention(user_id)}, you are already playing in another game."


def invalid_raise_message(minimum: int, maximum: int) -> str:
    return f"Invalid raise. Raise to an amount between {minimum} and {maximum}."


def info_message(user_id: int) -> str:
    return "\n".join([
        f"Hi {user_mention(user_id)}! I host Texas Hold'em games.",
        "`holdem! [buy-in]` start a game in this channel",
        "`check`, `call`, `fold`, `all-in` act on your turn",
        "`raise <amount>` raise to the given amount",
    ])
