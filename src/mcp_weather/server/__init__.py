"""Weather MCP servers and the HTTP application hosting them."""

from mcp_weather.server.capabilities import (
    ALL_WEATHER,
    CANADA_WEATHER,
    US_WEATHER,
    CapabilitySet,
    TransportKind,
    capabilities_for,
)
from mcp_weather.server.factory import WeatherProviders, create_weather_server, server_factory
from mcp_weather.server.sessions import SessionStore, TransportSession

__all__ = [
    "ALL_WEATHER",
    "CANADA_WEATHER",
    "US_WEATHER",
    "CapabilitySet",
    "SessionStore",
    "TransportKind",
    "TransportSession",
    "WeatherProviders",
    "capabilities_for",
    "create_weather_server",
    "server_factory",
]
