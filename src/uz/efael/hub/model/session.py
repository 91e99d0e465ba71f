import asyncio
import contextlib
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, Optional

from uz.efael.hub.matrix.connection import HomeserverConnection


class SessionState(str, Enum):
    created = "created"
    authorization_requested = "authorization_requested"
    authorized = "authorized"


@dataclass
class Session:
    """One authenticated-or-authenticating connection to a homeserver."""

    id: str
    connection: HomeserverConnection
    state: SessionState = SessionState.created


class SessionRegistry:
    """
    In-memory mapping from session id to live session.

    A single lock covers the whole mapping, so holding it blocks every other registry
    operation, including ones for unrelated sessions. Callers must never hold it across a
    network call: take what is needed, release, and re-acquire to commit.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = asyncio.Lock()

    async def insert(
        self,
        connection: HomeserverConnection,
        state: SessionState = SessionState.created,
    ) -> Session:
        """Store a connection under a freshly generated id."""
        async with self._lock:
            session_id = str(uuid.uuid4())
            while session_id in self._sessions:
                session_id = str(uuid.uuid4())
            session = Session(id=session_id, connection=connection, state=state)
            self._sessions[session_id] = session
            return session

    async def replace(
        self,
        session_id: str,
        connection: HomeserverConnection,
        state: SessionState = SessionState.created,
    ) -> Session:
        """Store a connection under a caller-chosen id, discarding any previous session."""
        async with self._lock:
            session = Session(id=session_id, connection=connection, state=state)
            self._sessions[session_id] = session
            return session

    @contextlib.asynccontextmanager
    async def get_mut(self, session_id: str) -> AsyncIterator[Optional[Session]]:
        """Yield the session for `session_id`, or None, with the lock held for the block."""
        async with self._lock:
            yield self._sessions.get(session_id)

    async def remove(self, session_id: str) -> Optional[Session]:
        async with self._lock:
            return self._sessions.pop(session_id, None)

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)
