"""Shared test doubles for mcp-weather tests."""

import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

import httpx
from mcp import types

from mcp_weather.client.connection import ConnectionType, McpConnection

NWS_BASE = "https://nws.test"
WEATHERAPI_BASE = "https://weatherapi.test/v1"
GEOMET_BASE = "https://geomet.test"


class RecordingHandler:
    """``httpx.MockTransport`` handler answering from a route table and recording every request.

    Routes map a URL path to a JSON payload, an ``httpx.Response`` or a
    callable taking the request. Unknown paths answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes: Dict[str, Any] = dict(routes or {})
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.routes.get(request.url.path)
        if answer is None:
            return httpx.Response(404, json={"detail": "not found"})
        if callable(answer):
            return answer(request)
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


class AsgiResponse:
    """Status, headers and body collected from one ASGI call."""

    def __init__(self) -> None:
        self.status: Optional[int] = None
        self.headers: Dict[str, str] = {}
        self.body = b""

    def json(self) -> Any:
        return json.loads(self.body)


async def call_asgi(
    app: Any,
    method: str,
    path: str,
    query: str = "",
    headers: Optional[Dict[str, str]] = None,
    body: bytes = b"",
) -> AsgiResponse:
    """Invoke a raw ASGI app with a single-chunk HTTP request and collect the response."""
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": query.encode(),
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }
    delivered = False

    async def receive() -> Dict[str, Any]:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    response = AsgiResponse()

    async def send(message: Dict[str, Any]) -> None:
        if message["type"] == "http.response.start":
            response.status = message["status"]
            response.headers = {k.decode().lower(): v.decode() for k, v in message.get("headers", [])}
        elif message["type"] == "http.response.body":
            response.body += message.get("body", b"")

    await app(scope, receive, send)
    return response


def text_block(text: str) -> SimpleNamespace:
    """An Anthropic text content block."""
    return SimpleNamespace(type="text", text=text)


def tool_use_block(name: str, arguments: Dict[str, Any], block_id: str = "toolu_1") -> SimpleNamespace:
    """An Anthropic tool_use content block."""
    return SimpleNamespace(type="tool_use", id=block_id, name=name, input=arguments)


def completion(*blocks: SimpleNamespace) -> SimpleNamespace:
    """An Anthropic message holding ``blocks``."""
    return SimpleNamespace(content=list(blocks))


def fake_connection(
    identifier: str,
    tools: Sequence[types.Tool] = (),
    resources: Sequence[types.Resource] = (),
    prompts: Sequence[types.Prompt] = (),
) -> MagicMock:
    """A McpConnection double listing the given tools, resources and prompts."""
    connection = MagicMock(spec=McpConnection)
    connection.identifier = identifier
    connection.connection_type = ConnectionType.HTTP
    connection.list_tools = AsyncMock(return_value=list(tools))
    connection.list_resources = AsyncMock(return_value=list(resources))
    connection.list_prompts = AsyncMock(return_value=list(prompts))
    connection.get_prompt = AsyncMock()
    connection.read_resource = AsyncMock()
    connection.call_tool = AsyncMock(
        return_value=types.CallToolResult(content=[types.TextContent(type="text", text=f"result from {identifier}")])
    )
    connection.close = AsyncMock()
    return connection


def mcp_tool(name: str, description: Optional[str] = None) -> types.Tool:
    return types.Tool(name=name, description=description, inputSchema={"type": "object", "properties": {}})
