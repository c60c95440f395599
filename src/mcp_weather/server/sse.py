"""SSE transport endpoints.

``GET /sse`` opens an event stream. Every stream gets its own
``SseServerTransport`` and its own server instance, registered in the SSE
session store under the session id announced in the stream's ``endpoint``
event. ``POST /messages/?session_id=...`` routes client messages to the
transport of that session.
"""

import asyncio
from uuid import UUID

from mcp.server.sse import SseServerTransport
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Receive, Scope, Send

from mcp_weather.logging import get_logger
from mcp_weather.server.factory import ServerFactory
from mcp_weather.server.sessions import SessionStore, TransportSession

logger = get_logger(__name__)

MESSAGES_PATH = "/messages/"


def normalize_session_id(session_id: str) -> str:
    """Return the canonical hex form of a UUID session id, or the input unchanged."""
    try:
        return UUID(session_id).hex
    except ValueError:
        return session_id


def connection_session_id(transport: SseServerTransport) -> str:
    """Return the session id a per-connection transport announced to its client."""
    # A per-connection transport holds exactly one writer, keyed by its session UUID
    return list(transport._read_stream_writers)[-1].hex


class SseEndpoint:
    """ASGI endpoints for the SSE transport, backed by an injected session store."""

    def __init__(self, store: SessionStore, server_factory: ServerFactory, messages_path: str = MESSAGES_PATH) -> None:
        self.store = store
        self.server_factory = server_factory
        self.messages_path = messages_path

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Serve one SSE stream for as long as the client keeps it open."""
        client = scope.get("client")
        logger.info("Incoming SSE connection", client=client[0] if client else "unknown")

        transport = SseServerTransport(self.messages_path)
        server = self.server_factory()

        async with transport.connect_sse(scope, receive, send) as (read_stream, write_stream):
            session_id = connection_session_id(transport)
            session = TransportSession(
                session_id=session_id,
                kind=self.store.kind,
                transport=transport,
                server=server,
                task=asyncio.current_task(),
            )
            await self.store.add(session)
            try:
                await server._mcp_server.run(
                    read_stream,
                    write_stream,
                    server._mcp_server.create_initialization_options(),
                )
            except asyncio.CancelledError:
                logger.info("SSE session cancelled", session_id=session_id)
                raise
            except Exception as e:
                # Keep the process up, only this session is lost
                logger.exception("SSE session failed", session_id=session_id, error=str(e))
            finally:
                await self.store.remove(session_id)

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Route a client message to the transport of its session."""
        request = Request(scope, receive)
        session_id = request.query_params.get("session_id") or request.query_params.get("sessionId")
        if not session_id:
            response = JSONResponse({"error": "Session ID is required"}, status_code=400)
            await response(scope, receive, send)
            return

        session = self.store.get(normalize_session_id(session_id))
        if session is None:
            logger.warning("Message for unknown SSE session", session_id=session_id)
            response = JSONResponse({"error": "Session not found"}, status_code=404)
            await response(scope, receive, send)
            return

        await session.transport.handle_post_message(scope, receive, send)
