"""SessionManager - Memory-based registry of live sessions.

Tracks, per process:
- channel -> Session for every running hand
- the channels currently recruiting players (waiting set)
- the seated users, derived from the player sets of running sessions

Both collections live in one immutable snapshot. Every mutation builds a new
snapshot and swaps it in under a lock, so a reader always sees a consistent
(sessions, waiting) pair and no channel is ever both occupied and waiting.
No method awaits, which also makes each call atomic with respect to other
asyncio tasks.
"""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Iterable, List, Mapping, NamedTuple, Optional

from holdem_bot.game.session import Session
from holdem_bot.utils.errors import (
    AlreadySeatedError,
    ChannelOccupiedError,
    ChannelWaitingError,
)

logger = logging.getLogger(__name__)


class RegistrySnapshot(NamedTuple):
    sessions: Mapping[int, Session]
    waiting: frozenset[int]

    @property
    def seated(self) -> frozenset[int]:
        seated: set[int] = set()
        for session in self.sessions.values():
            seated |= session.players
        return frozenset(seated)


EMPTY_SNAPSHOT = RegistrySnapshot(MappingProxyType({}), frozenset())


class SessionManager:
    """Registry of active sessions and recruiting channels."""

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot = EMPTY_SNAPSHOT

    @property
    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    # =========================================================================
    # Sessions
    # =========================================================================

    def register(self, channel_id: int, session: Session) -> None:
        """Register or update the session for a channel."""
        with self._lock:
            snap = self._snapshot
            current = snap.sessions.get(channel_id)
            if current is not None and current is not session:
                raise ChannelOccupiedError(channel_id)
            if channel_id in snap.waiting:
                raise ChannelWaitingError(channel_id)
            self._swap(sessions={**snap.sessions, channel_id: session})

    def get_session(self, channel_id: int) -> Optional[Session]:
        return self._snapshot.sessions.get(channel_id)

    def remove(self, channel_id: int, *, keep_waiting: bool = False) -> bool:
        """Remove a channel's session. Its players become free to join other games.

        With keep_waiting the channel moves into the waiting set in the same
        step, so no start command can slip in before the restart recruits.
        """
        with self._lock:
            snap = self._snapshot
            if channel_id not in snap.sessions:
                return False
            sessions = dict(snap.sessions)
            del sessions[channel_id]
            waiting = snap.waiting | {channel_id} if keep_waiting else None
            self._swap(sessions=sessions, waiting=waiting)
        logger.info(
            f"[REGISTRY] Session for channel {channel_id} removed"
            + (", channel kept waiting for restart" if keep_waiting else "")
        )
        return True

    def promote(self, channel_id: int, session: Session) -> None:
        """Move a channel from the waiting set to a registered session in one step.

        Raises:
            ChannelOccupiedError: a session is already registered for the channel
            AlreadySeatedError: one of the players sits in another session
        """
        with self._lock:
            snap = self._snapshot
            if channel_id in snap.sessions:
                raise ChannelOccupiedError(channel_id)
            clash = snap.seated & session.players
            if clash:
                raise AlreadySeatedError(next(iter(clash)))
            self._swap(
                sessions={**snap.sessions, channel_id: session},
                waiting=snap.waiting - {channel_id},
            )
        logger.info(
            f"[REGISTRY] Channel {channel_id} started a session with {len(session.players)} players"
        )

    def get_all_sessions(self) -> List[Session]:
        return list(self._snapshot.sessions.values())

    def get_session_count(self) -> int:
        return len(self._snapshot.sessions)

    def is_occupied(self, channel_id: int) -> bool:
        return channel_id in self._snapshot.sessions

    # =========================================================================
    # Waiting channels
    # =========================================================================

    def mark_waiting(self, channel_id: int) -> None:
        with self._lock:
            snap = self._snapshot
            if channel_id in snap.sessions:
                raise ChannelOccupiedError(channel_id)
            self._swap(waiting=snap.waiting | {channel_id})

    def unmark_waiting(self, channel_id: int) -> None:
        with self._lock:
            snap = self._snapshot
            if channel_id in snap.waiting:
                self._swap(waiting=snap.waiting - {channel_id})

    def is_waiting(self, channel_id: int) -> bool:
        return channel_id in self._snapshot.waiting

    def claim_channel(self, channel_id: int, user_id: int) -> None:
        """Check a start request and mark the channel waiting atomically.

        Raises:
            ChannelOccupiedError: a session is running in the channel
            ChannelWaitingError: the channel is already recruiting
            AlreadySeatedError: the user plays in another session
        """
        with self._lock:
            snap = self._snapshot
            if channel_id in snap.sessions:
                raise ChannelOccupiedError(channel_id)
            if channel_id in snap.waiting:
                raise ChannelWaitingError(channel_id)
            if user_id in snap.seated:
                raise AlreadySeatedError(user_id)
            self._swap(waiting=snap.waiting | {channel_id})
        logger.info(f"[REGISTRY] Channel {channel_id} claimed by user {user_id}")

    # =========================================================================
    # Seated users
    # =========================================================================

    def is_user_seated(self, user_id: int) -> bool:
        return any(
            session.has_player(user_id)
            for session in self._snapshot.sessions.values()
        )

    def filter_unseated(self, user_ids: Iterable[int]) -> list[int]:
        """Drop users that already play in a running session, keeping order."""
        seated = self._snapshot.seated
        result: list[int] = []
        for user_id in user_ids:
            if user_id not in seated and user_id not in result:
                result.append(user_id)
        return result

    def clear_all(self) -> None:
        """Clear all sessions and waiting channels (for testing)."""
        with self._lock:
            self._snapshot = EMPTY_SNAPSHOT

    def _swap(
        self,
        sessions: Optional[Mapping[int, Session]] = None,
        waiting: Optional[frozenset[int]] = None,
    ) -> None:
        # 호출자가 _lock을 잡고 있어야 함
        snap = self._snapshot
        self._snapshot = RegistrySnapshot(
            sessions=MappingProxyType(dict(sessions)) if sessions is not None else snap.sessions,
            waiting=frozenset(waiting) if waiting is not None else snap.waiting,
        )


# Singleton instance
session_manager = SessionManager()
