"""mcp-weather: MCP weather servers, a multi-server client and a chat harness."""

__version__ = "0.1.0"

from mcp_weather.exceptions import (
    CommunicationError,
    ConfigurationError,
    ToolNotFoundError,
    WeatherMcpError,
)

__all__ = [
    "CommunicationError",
    "ConfigurationError",
    "ToolNotFoundError",
    "WeatherMcpError",
]
