"""Tests for client connections."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from mcp import types
from mcp.shared.exceptions import McpError

from mcp_weather.client.connection import ConnectionType, McpConnection, infer_connection_type
from mcp_weather.client.results import content_text, resource_text, tool_result_text
from mcp_weather.exceptions import CapabilityNotSupportedError, CommunicationError, RequestTimeoutError


def _tool(name: str) -> types.Tool:
    return types.Tool(name=name, description=f"{name} tool", inputSchema={"type": "object", "properties": {}})


def _session(**methods) -> MagicMock:
    session = MagicMock()
    for name, value in methods.items():
        setattr(session, name, value)
    return session


class FakeClientSession:
    """Async context manager standing in for mcp.ClientSession."""

    initialize = AsyncMock()
    list_tools = AsyncMock()

    def __init__(self, read_stream, write_stream) -> None:
        self.streams = (read_stream, write_stream)

    async def __aenter__(self) -> "FakeClientSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None


@pytest.fixture(autouse=True)
def reset_fake_session() -> None:
    FakeClientSession.initialize = AsyncMock(return_value=SimpleNamespace(serverInfo=SimpleNamespace(name="weather")))
    FakeClientSession.list_tools = AsyncMock(return_value=types.ListToolsResult(tools=[_tool("get-alerts")]))


def test_infer_connection_type() -> None:
    assert infer_connection_type("http://localhost:3000/sse") == ConnectionType.SSE
    assert infer_connection_type("http://localhost:3000/sse/") == ConnectionType.SSE
    assert infer_connection_type("https://example.com/mcp") == ConnectionType.HTTP
    assert infer_connection_type("python -m mcp_weather") == ConnectionType.STDIO


class TestConnect:
    """Tests for opening a connection."""

    @pytest.mark.asyncio
    async def test_connect_caches_tools(self) -> None:
        connection = McpConnection("HTTP-Client-1", ConnectionType.HTTP, "http://localhost:3000/mcp")
        with patch("mcp_weather.client.connection.ClientSession", FakeClientSession), patch.object(
            connection, "_open_streams", AsyncMock(return_value=("r", "w"))
        ):
            await connection.connect()

        assert connection.connected
        assert connection.server_name == "weather"
        assert [tool.name for tool in connection.tools] == ["get-alerts"]

    @pytest.mark.asyncio
    async def test_connect_timeout(self) -> None:
        async def hang() -> None:
            await asyncio.sleep(10)

        FakeClientSession.initialize = AsyncMock(side_effect=hang)
        connection = McpConnection("SSE-Client-1", ConnectionType.SSE, "http://localhost:3000/sse", init_timeout=0.05)
        with patch("mcp_weather.client.connection.ClientSession", FakeClientSession), patch.object(
            connection, "_open_streams", AsyncMock(return_value=("r", "w"))
        ):
            with pytest.raises(RequestTimeoutError):
                await connection.connect()

        assert not connection.connected

    @pytest.mark.asyncio
    async def test_connect_failure(self) -> None:
        connection = McpConnection("SSE-Client-1", ConnectionType.SSE, "http://localhost:1/sse")
        with patch.object(connection, "_open_streams", AsyncMock(side_effect=OSError("refused"))):
            with pytest.raises(CommunicationError, match="Failed to connect"):
                await connection.connect()

    @pytest.mark.asyncio
    async def test_empty_stdio_command(self) -> None:
        connection = McpConnection("STDIO-Client-1", ConnectionType.STDIO, "   ")
        with pytest.raises(CommunicationError, match="Empty stdio command"):
            await connection.connect()


class TestRequests:
    """Tests for requests on an open connection."""

    @pytest.mark.asyncio
    async def test_not_connected(self) -> None:
        connection = McpConnection("x", ConnectionType.HTTP, "http://localhost/mcp")
        with pytest.raises(CommunicationError, match="not connected"):
            await connection.list_tools()

    @pytest.mark.asyncio
    async def test_list_tools_and_resources_are_cached(self) -> None:
        resource = types.Resource(name="weather-data", uri="file:///data.json")
        session = _session(
            list_tools=AsyncMock(return_value=types.ListToolsResult(tools=[_tool("a"), _tool("b")])),
            list_resources=AsyncMock(return_value=types.ListResourcesResult(resources=[resource])),
        )
        connection = McpConnection.from_session("srv", session)

        assert [tool.name for tool in await connection.list_tools()] == ["a", "b"]
        assert await connection.list_resources() == [resource]
        assert [tool.name for tool in connection.tools] == ["a", "b"]
        assert connection.resources == [resource]

    @pytest.mark.asyncio
    async def test_method_not_found_is_capability_error(self) -> None:
        error = McpError(types.ErrorData(code=types.METHOD_NOT_FOUND, message="Method not found"))
        connection = McpConnection.from_session("srv", _session(list_resources=AsyncMock(side_effect=error)))

        with pytest.raises(CapabilityNotSupportedError):
            await connection.list_resources()

    @pytest.mark.asyncio
    async def test_other_protocol_error(self) -> None:
        error = McpError(types.ErrorData(code=types.INTERNAL_ERROR, message="kaput"))
        connection = McpConnection.from_session("srv", _session(call_tool=AsyncMock(side_effect=error)))

        with pytest.raises(CommunicationError) as exc_info:
            await connection.call_tool("get-alerts", {"state": "CA"})
        assert not isinstance(exc_info.value, CapabilityNotSupportedError)
        assert exc_info.value.details == {"code": types.INTERNAL_ERROR}
        assert exc_info.value.target == "srv"

    @pytest.mark.asyncio
    async def test_request_timeout(self) -> None:
        async def hang(*args, **kwargs) -> None:
            await asyncio.sleep(10)

        connection = McpConnection.from_session(
            "srv", _session(call_tool=AsyncMock(side_effect=hang)), request_timeout=0.05
        )

        with pytest.raises(RequestTimeoutError):
            await connection.call_tool("get-alerts", {"state": "CA"})

    @pytest.mark.asyncio
    async def test_call_tool_passes_arguments(self) -> None:
        result = types.CallToolResult(content=[types.TextContent(type="text", text="ok")])
        session = _session(call_tool=AsyncMock(return_value=result))
        connection = McpConnection.from_session("srv", session)

        assert await connection.call_tool("get-alerts", {"state": "CA"}) is result
        session.call_tool.assert_awaited_once_with("get-alerts", arguments={"state": "CA"})

    @pytest.mark.asyncio
    async def test_close_is_best_effort(self) -> None:
        connection = McpConnection.from_session("srv", _session())
        stack = MagicMock()
        stack.aclose = AsyncMock(side_effect=RuntimeError("already gone"))
        connection._exit_stack = stack

        await connection.close()
        await connection.close()

        assert not connection.connected
        stack.aclose.assert_awaited_once()


class TestResults:
    """Tests for rendering results as text."""

    def test_tool_result_text_joins_blocks(self) -> None:
        result = types.CallToolResult(
            content=[
                types.TextContent(type="text", text="first"),
                types.ImageContent(type="image", data="AAAA", mimeType="image/png"),
                types.TextContent(type="text", text="last"),
            ]
        )
        lines = tool_result_text(result).split("\n")
        assert lines[0] == "first"
        assert '"image/png"' in lines[1]
        assert lines[2] == "last"

    def test_content_text_of_plain_object(self) -> None:
        assert content_text(42) == "42"

    def test_resource_text(self) -> None:
        result = types.ReadResourceResult(
            contents=[types.TextResourceContents(uri="file:///data.json", text='{"a": 1}', mimeType="application/json")]
        )
        assert resource_text(result) == '{"a": 1}'
        assert resource_text(types.ReadResourceResult(contents=[])) == ""
