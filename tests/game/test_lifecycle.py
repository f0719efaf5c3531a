"""Recruit / play / restart cycle tests."""

import asyncio
from unittest.mock import MagicMock

import pytest
from hypothesis import given, settings, strategies as st

from conftest import (
    ALICE,
    BOB,
    CAROL,
    CHANNEL_ID,
    OTHER_CHANNEL_ID,
    make_session,
    reactors,
    wait_until,
)
from holdem_bot.game.lifecycle import calculate_budgets
from holdem_bot.game.types import ActionType, Move


# =============================================================================
# calculate_budgets
# =============================================================================


class TestCalculateBudgets:
    def test_newcomer_gets_buy_in(self):
        budgets = calculate_budgets([ALICE, BOB, CAROL], 100, {ALICE: 0, BOB: 200})

        assert budgets == {ALICE: 0, BOB: 200, CAROL: 100}

    def test_fresh_table(self):
        assert calculate_budgets([ALICE, BOB], 500, {}) == {ALICE: 500, BOB: 500}

    def test_previous_players_who_left_keep_balance(self):
        budgets = calculate_budgets([ALICE], 100, {ALICE: 150, BOB: 50})

        assert budgets[ALICE] == 150
        assert budgets[BOB] == 50

    @given(
        players=st.lists(st.integers(min_value=1, max_value=50), unique=True, max_size=8),
        previous=st.dictionaries(
            st.integers(min_value=1, max_value=50),
            st.integers(min_value=0, max_value=10_000),
            max_size=8,
        ),
        buy_in=st.integers(min_value=1, max_value=10_000),
    )
    @settings(max_examples=10, deadline=None)
    def test_previous_balances_win(self, players, previous, buy_in):
        budgets = calculate_budgets(players, buy_in, previous)

        for player in players:
            assert budgets[player] == previous.get(player, buy_in)


# =============================================================================
# Recruitment
# =============================================================================


class TestRecruitment:
    @pytest.mark.asyncio
    async def test_single_player_releases_channel(self, lifecycle, messenger, manager, engine):
        manager.claim_channel(CHANNEL_ID, ALICE)
        messenger.reaction_rounds.append(reactors(ALICE))

        await lifecycle.start_new_game(CHANNEL_ID, ALICE, 100, 1)

        assert engine.new_game_calls == []
        assert not manager.is_waiting(CHANNEL_ID)
        assert not manager.is_occupied(CHANNEL_ID)
        assert messenger.edits[-1][2] == "Not enough players."

    @pytest.mark.asyncio
    async def test_posts_new_game_message(self, lifecycle, messenger, manager):
        manager.claim_channel(CHANNEL_ID, ALICE)

        await lifecycle.start_new_game(CHANNEL_ID, ALICE, 250, 2)

        first = messenger.messages_to(CHANNEL_ID)[0]
        assert first.startswith(f"<@{ALICE}> wants to play Texas Hold'em!")
        assert "Buy-in: 250 chips." in first

    @pytest.mark.asyncio
    async def test_unfunded_table_does_not_start(self, lifecycle, messenger, manager, engine):
        manager.claim_channel(CHANNEL_ID, ALICE)
        messenger.reaction_rounds.append(reactors(ALICE, BOB))

        await lifecycle.start_new_game(CHANNEL_ID, ALICE, 0, 1)

        assert len(engine.new_game_calls) == 1
        assert manager.get_session(CHANNEL_ID) is None
        assert not manager.is_waiting(CHANNEL_ID)
        assert messenger.edits[-1][2] == "Not enough players."

    @pytest.mark.asyncio
    async def test_engine_crash_releases_channel(self, lifecycle, messenger, manager, engine):
        engine.new_game = MagicMock(side_effect=RuntimeError("deck exploded"))
        manager.claim_channel(CHANNEL_ID, ALICE)
        messenger.reaction_rounds.append(reactors(ALICE, BOB))

        await lifecycle.start_new_game(CHANNEL_ID, ALICE, 100, 1)

        assert not manager.is_waiting(CHANNEL_ID)
        assert not manager.is_occupied(CHANNEL_ID)

    @pytest.mark.asyncio
    async def test_players_seated_elsewhere_are_skipped(self, lifecycle, messenger, manager, engine):
        manager.register(
            OTHER_CHANNEL_ID,
            make_session(engine, players=(CAROL, 9), channel_id=OTHER_CHANNEL_ID),
        )
        engine.new_game_calls.clear()
        manager.claim_channel(CHANNEL_ID, ALICE)
        messenger.reaction_rounds.append(reactors(ALICE, CAROL, BOB))

        task = asyncio.create_task(lifecycle.start_new_game(CHANNEL_ID, ALICE, 100, 1))
        await wait_until(lambda: manager.get_session(CHANNEL_ID) is not None)

        assert engine.new_game_calls[0]["players"] == [ALICE, BOB]
        assert manager.get_session(CHANNEL_ID).players == frozenset({ALICE, BOB})

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert manager.get_session(CHANNEL_ID) is None
        assert not manager.is_waiting(CHANNEL_ID)


# =============================================================================
# Full cycle
# =============================================================================


class TestRestartCycle:
    @pytest.mark.asyncio
    async def test_bankrolls_carry_over_and_newcomer_buys_in(
        self, lifecycle, messenger, manager, engine
    ):
        manager.claim_channel(CHANNEL_ID, ALICE)
        messenger.reaction_rounds.extend([
            reactors(ALICE, BOB),
            reactors(ALICE, BOB, CAROL),
        ])

        task = asyncio.create_task(lifecycle.start_new_game(CHANNEL_ID, ALICE, 100, 1))

        # Hand 1: ALICE folds her whole bankroll to BOB
        await wait_until(lambda: manager.get_session(CHANNEL_ID) is not None)
        first = manager.get_session(CHANNEL_ID)
        await first.moves.put(Move(ActionType.FOLD))

        # Hand 2: ALICE and BOB fold, CAROL takes it
        await wait_until(
            lambda: manager.get_session(CHANNEL_ID) is not None
            and manager.get_session(CHANNEL_ID) is not first
        )
        second = manager.get_session(CHANNEL_ID)
        await second.moves.put(Move(ActionType.FOLD))
        await second.moves.put(Move(ActionType.FOLD))

        await asyncio.wait_for(task, timeout=2)

        assert engine.new_game_calls[0]["budgets"] == {ALICE: 100, BOB: 100}
        assert engine.restart_calls[0]["players"] == [ALICE, BOB, CAROL]
        assert engine.restart_calls[0]["budgets"] == {ALICE: 0, BOB: 200, CAROL: 100}
        assert second.state.hand_number == 2

        # Third window is empty: channel goes idle
        assert manager.snapshot.sessions == {}
        assert manager.snapshot.waiting == frozenset()
        assert messenger.edits[-1][2] == "Not enough players."

    @pytest.mark.asyncio
    async def test_restart_message_lists_bankrolls(self, lifecycle, messenger, manager):
        manager.claim_channel(CHANNEL_ID, ALICE)
        messenger.reaction_rounds.append(reactors(ALICE, BOB))

        task = asyncio.create_task(lifecycle.start_new_game(CHANNEL_ID, ALICE, 100, 1))
        await wait_until(lambda: manager.get_session(CHANNEL_ID) is not None)
        await manager.get_session(CHANNEL_ID).moves.put(Move(ActionType.FOLD))
        await asyncio.wait_for(task, timeout=2)

        restart = next(
            m for m in messenger.messages_to(CHANNEL_ID)
            if m.startswith("The hand is over.")
        )
        assert f"<@{BOB}>: 200" in restart
        assert f"<@{ALICE}>: 0" in restart
        assert "New players buy in with 100 chips." in restart

    @pytest.mark.asyncio
    async def test_channel_stays_claimed_between_hands(self, lifecycle, messenger, manager):
        manager.claim_channel(CHANNEL_ID, ALICE)
        messenger.reaction_rounds.append(reactors(ALICE, BOB))
        observed = []

        original_gather = lifecycle.gathering.gather

        async def observing_gather(channel_id, message_id):
            observed.append((manager.is_waiting(channel_id), manager.is_occupied(channel_id)))
            return await original_gather(channel_id, message_id)

        lifecycle.gathering.gather = observing_gather

        task = asyncio.create_task(lifecycle.start_new_game(CHANNEL_ID, ALICE, 100, 1))
        await wait_until(lambda: manager.get_session(CHANNEL_ID) is not None)
        await manager.get_session(CHANNEL_ID).moves.put(Move(ActionType.FOLD))
        await asyncio.wait_for(task, timeout=2)

        # both windows ran with the channel waiting and no session registered
        assert observed == [(True, False), (True, False)]


# =============================================================================
# Hole card notification
# =============================================================================


class TestNotifyPlayers:
    @pytest.mark.asyncio
    async def test_every_player_gets_a_dm(self, lifecycle, messenger, engine):
        session = make_session(engine, players=(ALICE, BOB))

        await lifecycle.notify_players(session)

        assert sorted(messenger.dms) == [ALICE, BOB]
        dm = dict(messenger.sent)[50_000 + ALICE]
        assert dm == f"Your cards for the game in <#{CHANNEL_ID}>: A♠ K♦"

    @pytest.mark.asyncio
    async def test_dm_failure_is_not_fatal(self, lifecycle, messenger, engine):
        async def closed_dms(user_id):
            if user_id == ALICE:
                raise PermissionError("Cannot send messages to this user")
            return 50_000 + user_id

        messenger.create_dm = closed_dms
        session = make_session(engine, players=(ALICE, BOB))

        await lifecycle.notify_players(session)

        assert [cid for cid, _ in messenger.sent] == [50_000 + BOB]
