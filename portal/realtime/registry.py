"""Live realtime sessions, one per authenticated user.

The registry is process-local and in-memory: with several server processes
each one only knows its own connections. One instance is built per app and
handed to the NotificationGateway, which is the only writer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from portal.core.metrics import CONNECTED_USERS
from portal.models.user import Role
from portal.realtime.transport import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConnectionSession:
    user_id: str
    role: Role
    handle: Session
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ConnectionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, ConnectionSession] = {}

    def register(self, user_id: str, role: Role, handle: Session) -> ConnectionSession:
        """Track ``handle`` as the live session for ``user_id``.

        A previous session for the same user is forgotten but not closed;
        its transport connection stays open until the client drops it.
        """
        previous = self._sessions.get(user_id)
        if previous is not None and previous.handle is not handle:
            logger.info(
                "Replacing session for user=%s (old=%s new=%s)",
                user_id,
                previous.handle.id,
                handle.id,
            )
        entry = ConnectionSession(user_id=user_id, role=role, handle=handle)
        self._sessions[user_id] = entry
        CONNECTED_USERS.set(len(self._sessions))
        return entry

    def unregister(self, user_id: str, handle: Session | None = None) -> bool:
        """Forget the session for ``user_id``. No-op if absent.

        When ``handle`` is given, the entry is only removed if it still
        belongs to that handle, so a late disconnect from a replaced
        connection cannot evict the user's newer one.
        """
        entry = self._sessions.get(user_id)
        if entry is None:
            return False
        if handle is not None and entry.handle is not handle:
            logger.debug(
                "Ignoring stale disconnect for user=%s session=%s", user_id, handle.id
            )
            return False
        del self._sessions[user_id]
        CONNECTED_USERS.set(len(self._sessions))
        return True

    def is_connected(self, user_id: str) -> bool:
        return user_id in self._sessions

    def count(self) -> int:
        return len(self._sessions)

    def lookup(self, user_id: str) -> Session | None:
        entry = self._sessions.get(user_id)
        return entry.handle if entry is not None else None

    def get(self, user_id: str) -> ConnectionSession | None:
        return self._sessions.get(user_id)

    def sessions(self) -> list[ConnectionSession]:
        return list(self._sessions.values())
