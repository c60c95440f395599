"""Streamable HTTP transport endpoint.

Sessions are keyed by the ``Mcp-Session-Id`` header. An ``initialize``
request without a session id opens a new session: the id is minted, a
``StreamableHTTPServerTransport`` is created and connected to a fresh server
instance, and the session is stored before the initialize request itself is
handed to the transport. Requests with a known id are routed to the existing
transport. Anything else is rejected.
"""

import asyncio
import json
from uuid import uuid4

from mcp.server.fastmcp import FastMCP
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from mcp_weather.exceptions import SessionError
from mcp_weather.logging import get_logger
from mcp_weather.server.factory import ServerFactory
from mcp_weather.server.sessions import SessionStore, TransportSession

logger = get_logger(__name__)

BAD_REQUEST = -32000
SESSION_NOT_FOUND = -32001
INTERNAL_ERROR = -32603


def jsonrpc_error(code: int, message: str, status_code: int) -> JSONResponse:
    """Build an HTTP response carrying a JSON-RPC error object."""
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status_code,
    )


def is_initialize_request(body: bytes) -> bool:
    """Return True if ``body`` is a JSON-RPC ``initialize`` request (or a batch holding one)."""
    try:
        payload = json.loads(body)
    except ValueError:
        return False
    messages = payload if isinstance(payload, list) else [payload]
    return any(isinstance(message, dict) and message.get("method") == "initialize" for message in messages)


def replay_body(body: bytes, receive: Receive) -> Receive:
    """Return a ``receive`` callable that yields ``body`` once, then defers to ``receive``."""
    consumed = False

    async def replay() -> Message:
        nonlocal consumed
        if not consumed:
            consumed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class StreamableHttpEndpoint:
    """ASGI endpoint for the Streamable HTTP transport, backed by an injected session store."""

    def __init__(self, store: SessionStore, server_factory: ServerFactory, json_response: bool = False) -> None:
        self.store = store
        self.server_factory = server_factory
        self.json_response = json_response

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        started = False

        async def tracking_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            if session_id:
                await self._handle_existing(session_id, scope, receive, tracking_send)
            else:
                await self._handle_new(request, scope, receive, tracking_send)
        except Exception as e:
            logger.exception("Error handling MCP request", session_id=session_id, error=str(e))
            if not started:
                response = jsonrpc_error(INTERNAL_ERROR, "Internal server error", 500)
                await response(scope, receive, send)

    async def _handle_existing(self, session_id: str, scope: Scope, receive: Receive, send: Send) -> None:
        session = self.store.get(session_id)
        if session is None:
            logger.warning("Request for unknown session", session_id=session_id)
            response = jsonrpc_error(SESSION_NOT_FOUND, "Session not found", 404)
            await response(scope, receive, send)
            return
        await session.transport.handle_request(scope, receive, send)

    async def _handle_new(self, request: Request, scope: Scope, receive: Receive, send: Send) -> None:
        body = await request.body() if request.method == "POST" else b""
        if not is_initialize_request(body):
            response = jsonrpc_error(BAD_REQUEST, "Bad Request: No valid session ID provided", 400)
            await response(scope, receive, send)
            return

        session = await self.open_session()
        await session.transport.handle_request(scope, replay_body(body, receive), send)

    async def open_session(self) -> TransportSession:
        """Create, connect and store a new session.

        Raises:
            SessionError: If the server stopped before it was connected
        """
        session_id = uuid4().hex
        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self.json_response,
        )
        server = self.server_factory()
        ready = asyncio.Event()
        task = asyncio.create_task(self._serve(session_id, transport, server, ready))
        await ready.wait()
        if task.done():
            raise SessionError(session_id, "MCP server stopped before the session was connected")

        session = TransportSession(
            session_id=session_id,
            kind=self.store.kind,
            transport=transport,
            server=server,
            task=task,
        )
        await self.store.add(session)
        return session

    async def _serve(
        self, session_id: str, transport: StreamableHTTPServerTransport, server: FastMCP, ready: asyncio.Event
    ) -> None:
        """Run the server on the transport until the session ends."""
        try:
            async with transport.connect() as (read_stream, write_stream):
                ready.set()
                await server._mcp_server.run(
                    read_stream,
                    write_stream,
                    server._mcp_server.create_initialization_options(),
                    stateless=False,
                )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Streamable HTTP session failed", session_id=session_id, error=str(e))
        finally:
            ready.set()
            await self.store.remove(session_id)
