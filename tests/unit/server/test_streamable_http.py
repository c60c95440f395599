"""Tests for the Streamable HTTP transport endpoint."""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, List
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mcp_weather.server.capabilities import CANADA_WEATHER, TransportKind
from mcp_weather.server.factory import WeatherProviders, create_weather_server
from mcp_weather.server.sessions import SessionStore, TransportSession
from mcp_weather.server.streamable_http import (
    BAD_REQUEST,
    INTERNAL_ERROR,
    SESSION_NOT_FOUND,
    StreamableHttpEndpoint,
    is_initialize_request,
)
from tests.helpers import call_asgi

INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-03-26",
        "capabilities": {},
        "clientInfo": {"name": "test-client", "version": "1.0"},
    },
}
MCP_HEADERS = {"content-type": "application/json", "accept": "application/json, text/event-stream"}


class FakeHttpTransport:
    """Stands in for StreamableHTTPServerTransport."""

    instances: List["FakeHttpTransport"] = []

    def __init__(self, mcp_session_id: str, is_json_response_enabled: bool = False) -> None:
        self.mcp_session_id = mcp_session_id
        self.bodies: List[bytes] = []
        self.terminate = AsyncMock()
        FakeHttpTransport.instances.append(self)

    @asynccontextmanager
    async def connect(self):
        yield ("read-stream", "write-stream")

    async def handle_request(self, scope: Any, receive: Any, send: Any) -> None:
        message = await receive()
        self.bodies.append(message["body"])
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"{}"})


def _blocking_server() -> MagicMock:
    server = MagicMock()

    async def run(*args: Any, **kwargs: Any) -> None:
        await asyncio.sleep(3600)

    server._mcp_server.run = AsyncMock(side_effect=run)
    return server


@pytest.fixture(autouse=True)
def reset_fake_transports() -> None:
    FakeHttpTransport.instances = []


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(TransportKind.HTTP, close_timeout=1.0)


class TestRejections:
    """Tests for requests that must not reach a transport."""

    @pytest.mark.asyncio
    async def test_post_without_session_that_is_not_initialize(self, store: SessionStore) -> None:
        endpoint = StreamableHttpEndpoint(store, _blocking_server)
        body = json.dumps({"jsonrpc": "2.0", "id": 1, "method": "tools/list"}).encode()

        response = await call_asgi(endpoint, "POST", "/mcp", headers=MCP_HEADERS, body=body)

        assert response.status == 400
        assert response.json()["error"] == {"code": BAD_REQUEST, "message": "Bad Request: No valid session ID provided"}
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_get_without_session(self, store: SessionStore) -> None:
        endpoint = StreamableHttpEndpoint(store, _blocking_server)
        response = await call_asgi(endpoint, "GET", "/mcp")
        assert response.status == 400
        assert response.json()["error"]["code"] == BAD_REQUEST

    @pytest.mark.asyncio
    async def test_unknown_session(self, store: SessionStore) -> None:
        endpoint = StreamableHttpEndpoint(store, _blocking_server)
        response = await call_asgi(endpoint, "POST", "/mcp", headers={**MCP_HEADERS, "mcp-session-id": "nope"})
        assert response.status == 404
        assert response.json() == {
            "jsonrpc": "2.0",
            "error": {"code": SESSION_NOT_FOUND, "message": "Session not found"},
            "id": None,
        }

    @pytest.mark.asyncio
    async def test_transport_failure_answers_internal_error(self, store: SessionStore) -> None:
        transport = MagicMock()
        transport.handle_request = AsyncMock(side_effect=RuntimeError("boom"))
        await store.add(TransportSession("s1", TransportKind.HTTP, transport, MagicMock()))
        endpoint = StreamableHttpEndpoint(store, _blocking_server)

        response = await call_asgi(endpoint, "DELETE", "/mcp", headers={"mcp-session-id": "s1"})

        assert response.status == 500
        assert response.json()["error"] == {"code": INTERNAL_ERROR, "message": "Internal server error"}


class TestSessions:
    """Tests for opening and routing sessions."""

    @pytest.mark.asyncio
    async def test_initialize_opens_session(self, store: SessionStore) -> None:
        endpoint = StreamableHttpEndpoint(store, _blocking_server)
        body = json.dumps(INITIALIZE).encode()

        with patch("mcp_weather.server.streamable_http.StreamableHTTPServerTransport", FakeHttpTransport):
            response = await call_asgi(endpoint, "POST", "/mcp", headers=MCP_HEADERS, body=body)

        assert response.status == 200
        transport = FakeHttpTransport.instances[0]
        assert store.session_ids() == [transport.mcp_session_id]
        assert transport.bodies == [body]

        await store.close_all()
        transport.terminate.assert_awaited_once()
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_existing_session_is_routed(self, store: SessionStore) -> None:
        endpoint = StreamableHttpEndpoint(store, _blocking_server)
        with patch("mcp_weather.server.streamable_http.StreamableHTTPServerTransport", FakeHttpTransport):
            await call_asgi(endpoint, "POST", "/mcp", headers=MCP_HEADERS, body=json.dumps(INITIALIZE).encode())
            await call_asgi(endpoint, "POST", "/mcp", headers=MCP_HEADERS, body=json.dumps(INITIALIZE).encode())
        first, second = FakeHttpTransport.instances

        routed = {**MCP_HEADERS, "mcp-session-id": second.mcp_session_id}
        with patch("mcp_weather.server.streamable_http.StreamableHTTPServerTransport", FakeHttpTransport):
            await call_asgi(endpoint, "POST", "/mcp", headers=routed, body=b"{}")
            await call_asgi(endpoint, "POST", "/mcp", headers=routed, body=b"[]")

        assert len(FakeHttpTransport.instances) == 2
        assert store.get(second.mcp_session_id).transport is second
        assert len(first.bodies) == 1
        assert second.bodies[-2:] == [b"{}", b"[]"]
        assert first.mcp_session_id != second.mcp_session_id
        await store.close_all()

    @pytest.mark.asyncio
    async def test_server_that_stops_immediately_is_not_stored(self, store: SessionStore) -> None:
        server = MagicMock()
        server._mcp_server.run = AsyncMock(side_effect=RuntimeError("boom"))
        endpoint = StreamableHttpEndpoint(store, lambda: server)

        with patch("mcp_weather.server.streamable_http.StreamableHTTPServerTransport", FakeHttpTransport):
            response = await call_asgi(
                endpoint, "POST", "/mcp", headers=MCP_HEADERS, body=json.dumps(INITIALIZE).encode()
            )

        assert response.status == 500
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_initialize_with_real_transport(self, store: SessionStore, providers: WeatherProviders) -> None:
        """Test a full initialize round trip through the SDK transport in JSON response mode."""
        endpoint = StreamableHttpEndpoint(
            store,
            lambda: create_weather_server(CANADA_WEATHER, TransportKind.HTTP, providers),
            json_response=True,
        )

        response = await call_asgi(endpoint, "POST", "/mcp", headers=MCP_HEADERS, body=json.dumps(INITIALIZE).encode())

        assert response.status == 200
        session_id = response.headers["mcp-session-id"]
        assert store.session_ids() == [session_id]
        assert response.json()["result"]["serverInfo"]["name"] == "weather"

        await store.close_all()
        assert len(store) == 0


def test_is_initialize_request() -> None:
    assert is_initialize_request(json.dumps(INITIALIZE).encode())
    assert is_initialize_request(json.dumps([{"method": "notifications/initialized"}, INITIALIZE]).encode())
    assert not is_initialize_request(json.dumps({"method": "tools/list"}).encode())
    assert not is_initialize_request(b"not json")
    assert not is_initialize_request(b"")
