"""Transport session bookkeeping for the streaming MCP transports.

A :class:`SessionStore` maps session ids to the live transport serving them.
There is one store per transport kind, owned by the HTTP application and
handed to the endpoint that uses it.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from mcp_weather.exceptions import DuplicateSessionError, SessionNotFoundError
from mcp_weather.logging import get_logger
from mcp_weather.server.capabilities import TransportKind

logger = get_logger(__name__)

DEFAULT_CLOSE_TIMEOUT = 5.0


@dataclass
class TransportSession:
    """A live binding between one transport and the server instance it serves."""

    session_id: str
    kind: TransportKind
    transport: Any
    server: FastMCP
    task: Optional["asyncio.Task[Any]"] = None
    created_at: float = field(default_factory=time.time)

    async def close(self) -> None:
        """Terminate the transport (when it supports it) and stop the serving task."""
        terminate = getattr(self.transport, "terminate", None)
        if terminate is not None:
            await terminate()

        task = self.task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


class SessionStore:
    """Session id to transport mapping for one transport kind.

    Inserts and deletes are serialized by a lock so concurrent initialize
    requests cannot corrupt the mapping. Reads are lock free.
    """

    def __init__(self, kind: TransportKind, close_timeout: float = DEFAULT_CLOSE_TIMEOUT) -> None:
        self.kind = TransportKind(kind)
        self.close_timeout = close_timeout
        self._sessions: Dict[str, TransportSession] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def session_ids(self) -> List[str]:
        return list(self._sessions)

    async def add(self, session: TransportSession) -> None:
        """Register a new session.

        Raises:
            DuplicateSessionError: If a live session already uses the same id
        """
        async with self._lock:
            if session.session_id in self._sessions:
                raise DuplicateSessionError(session.session_id)
            self._sessions[session.session_id] = session
        logger.info("Session opened", transport=self.kind.value, session_id=session.session_id, active=len(self))

    def get(self, session_id: Optional[str]) -> Optional[TransportSession]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def lookup(self, session_id: Optional[str]) -> TransportSession:
        """Return the session for ``session_id``.

        Raises:
            SessionNotFoundError: If no live session has that id
        """
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id or "")
        return session

    async def remove(self, session_id: str) -> Optional[TransportSession]:
        """Forget a session. Removing an unknown id is a no-op."""
        async with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info("Session closed", transport=self.kind.value, session_id=session_id, active=len(self))
        return session

    async def close_all(self) -> None:
        """Close every session, giving each one ``close_timeout`` seconds.

        Per-session failures are logged and do not stop the sweep. The store is
        empty afterwards.
        """
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        if sessions:
            logger.info("Closing sessions", transport=self.kind.value, count=len(sessions))

        for session in sessions:
            try:
                await asyncio.wait_for(session.close(), timeout=self.close_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Timed out closing session",
                    transport=self.kind.value,
                    session_id=session.session_id,
                    timeout=self.close_timeout,
                )
            except Exception as e:
                logger.error(
                    "Error closing session", transport=self.kind.value, session_id=session.session_id, error=str(e)
                )
