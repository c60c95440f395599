"""MCP clients: connections, the unified aggregator and the chat front-ends."""

from mcp_weather.client.connection import ConnectionType, McpConnection, infer_connection_type

__all__ = ["ConnectionType", "McpConnection", "infer_connection_type"]
