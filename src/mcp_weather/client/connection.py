"""A client connection to one MCP server."""

import asyncio
import shlex
from contextlib import AsyncExitStack
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from mcp import ClientSession, StdioServerParameters, types
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from pydantic import AnyUrl

from mcp_weather.exceptions import CapabilityNotSupportedError, CommunicationError, RequestTimeoutError
from mcp_weather.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_INIT_TIMEOUT = 15.0


class ConnectionType(str, Enum):
    """Transport used by a client connection."""

    SSE = "SSE"
    HTTP = "HTTP"
    STDIO = "STDIO"


def infer_connection_type(target: str) -> ConnectionType:
    """Guess the transport from a server target.

    URLs ending in ``/sse`` use SSE, other URLs Streamable HTTP, anything else
    is a command line spawned over stdio.
    """
    if target.startswith(("http://", "https://")):
        return ConnectionType.SSE if target.rstrip("/").endswith("/sse") else ConnectionType.HTTP
    return ConnectionType.STDIO


class McpConnection:
    """One physical transport and one MCP client session to a single server.

    A connection is never pointed at a different target once created. The
    tool and resource lists fetched from the server are cached on the
    connection.
    """

    def __init__(
        self,
        identifier: str,
        connection_type: ConnectionType,
        target: str,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        init_timeout: float = DEFAULT_INIT_TIMEOUT,
    ) -> None:
        self.identifier = identifier
        self.connection_type = ConnectionType(connection_type)
        self.target = target
        self.request_timeout = request_timeout
        self.init_timeout = init_timeout

        self.session: Optional[ClientSession] = None
        self.server_name: Optional[str] = None
        self.tools: List[types.Tool] = []
        self.resources: List[types.Resource] = []
        self._exit_stack: Optional[AsyncExitStack] = None

    def __repr__(self) -> str:
        return f"McpConnection({self.identifier!r}, {self.connection_type.value}, {self.target!r})"

    @classmethod
    def from_session(
        cls,
        identifier: str,
        session: ClientSession,
        connection_type: ConnectionType = ConnectionType.STDIO,
        target: str = "in-process",
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> "McpConnection":
        """Wrap an already initialized session. The caller keeps ownership of it."""
        connection = cls(identifier, connection_type, target, request_timeout=request_timeout)
        connection.session = session
        return connection

    @property
    def connected(self) -> bool:
        return self.session is not None

    async def _open_streams(self, stack: AsyncExitStack) -> Tuple[Any, Any]:
        if self.connection_type == ConnectionType.SSE:
            read_stream, write_stream = await stack.enter_async_context(sse_client(self.target))
        elif self.connection_type == ConnectionType.HTTP:
            read_stream, write_stream, _ = await stack.enter_async_context(streamablehttp_client(self.target))
        else:
            argv = shlex.split(self.target)
            if not argv:
                raise CommunicationError("Empty stdio command", target=self.identifier)
            params = StdioServerParameters(command=argv[0], args=argv[1:])
            read_stream, write_stream = await stack.enter_async_context(stdio_client(params))
        return read_stream, write_stream

    async def connect(self) -> None:
        """Open the transport, initialize the session and cache the tool list.

        Raises:
            RequestTimeoutError: If initialization did not finish in time
            CommunicationError: If the server could not be reached
        """
        if self.session is not None:
            return

        logger.info("Connecting to MCP server", connection=self.identifier, target=self.target)
        stack = AsyncExitStack()
        try:
            read_stream, write_stream = await self._open_streams(stack)
            session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
            init_result = await asyncio.wait_for(session.initialize(), timeout=self.init_timeout)
        except asyncio.TimeoutError as e:
            await self._close_stack(stack)
            raise RequestTimeoutError(
                f"Timeout initializing MCP session with {self.target}", target=self.identifier
            ) from e
        except Exception as e:
            await self._close_stack(stack)
            if isinstance(e, CommunicationError):
                raise
            raise CommunicationError(f"Failed to connect to {self.target}: {e}", target=self.identifier) from e

        self._exit_stack = stack
        self.session = session
        self.server_name = init_result.serverInfo.name
        logger.info("Connected to MCP server", connection=self.identifier, server=self.server_name)

        await self.list_tools()

    async def _request(self, operation: str, call: Callable[[ClientSession], Awaitable[T]]) -> T:
        """Run one MCP request with the connection's deadline and error mapping."""
        if self.session is None:
            raise CommunicationError(f"Connection {self.identifier} is not connected", target=self.identifier)
        try:
            return await asyncio.wait_for(call(self.session), timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            logger.error("MCP request timed out", connection=self.identifier, operation=operation)
            raise RequestTimeoutError(
                f"Timeout during {operation} on {self.identifier}", target=self.identifier
            ) from e
        except McpError as e:
            if e.error.code == types.METHOD_NOT_FOUND:
                raise CapabilityNotSupportedError(
                    f"{self.identifier} does not support {operation}", target=self.identifier
                ) from e
            raise CommunicationError(
                f"{operation} failed on {self.identifier}: {e.error.message}",
                target=self.identifier,
                details={"code": e.error.code},
            ) from e
        except CommunicationError:
            raise
        except Exception as e:
            raise CommunicationError(f"{operation} failed on {self.identifier}: {e}", target=self.identifier) from e

    async def list_tools(self) -> List[types.Tool]:
        result = await self._request("tools/list", lambda session: session.list_tools())
        self.tools = list(result.tools)
        return self.tools

    async def list_resources(self) -> List[types.Resource]:
        result = await self._request("resources/list", lambda session: session.list_resources())
        self.resources = list(result.resources)
        return self.resources

    async def list_prompts(self) -> List[types.Prompt]:
        result = await self._request("prompts/list", lambda session: session.list_prompts())
        return list(result.prompts)

    async def get_prompt(self, name: str, arguments: Optional[Dict[str, str]] = None) -> types.GetPromptResult:
        return await self._request("prompts/get", lambda session: session.get_prompt(name, arguments=arguments))

    async def read_resource(self, uri: str) -> types.ReadResourceResult:
        return await self._request("resources/read", lambda session: session.read_resource(AnyUrl(uri)))

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> types.CallToolResult:
        """Call a tool on this connection's server.

        Args:
            name: Name of the tool on the server
            arguments: Tool arguments

        Returns:
            The raw tool result

        Raises:
            CommunicationError: If the request failed or timed out
        """
        logger.debug("Calling tool", connection=self.identifier, tool=name)
        return await self._request("tools/call", lambda session: session.call_tool(name, arguments=arguments or {}))

    async def _close_stack(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception as e:
            logger.warning("Error closing MCP transport", connection=self.identifier, error=str(e))

    async def close(self) -> None:
        """Close the session and the transport, best effort."""
        stack, self._exit_stack = self._exit_stack, None
        self.session = None
        if stack is not None:
            await self._close_stack(stack)
            logger.info("Closed MCP connection", connection=self.identifier)
