"""Client for a single MCP server."""

from mcp_weather.client.aggregator import UnifiedClient
from mcp_weather.client.catalog import UnifiedResource
from mcp_weather.client.connection import McpConnection
from mcp_weather.client.llm import CompletionClient

WEATHER_KEYWORDS = ("weather", "climate", "temperature", "forecast", "climate change", "dataset")
REAL_TIME_KEYWORDS = ("current", "today", "now", "forecast", "alert")
WEATHER_TOOL_MARKERS = ("forecast", "alert", "weather")

REAL_TIME_NOTE = (
    "(Note: You have access to weather tools that can provide real-time forecasts and alerts. "
    "Use them if the query requires current weather information.)"
)


class SingleServerClient(UnifiedClient):
    """Chat client bound to one server, keeping the conversation by default.

    Weather questions are enriched before they reach the LLM: questions about
    current conditions get a hint to use the server's tools, other weather
    questions get the server's dataset inlined.
    """

    def __init__(self, connection: McpConnection, llm: CompletionClient, keep_history: bool = True) -> None:
        super().__init__([connection], llm, keep_history=keep_history)

    @property
    def connection(self) -> McpConnection:
        return self.connections[0]

    def has_weather_tools(self) -> bool:
        return any(marker in tool.name for tool in self.catalog for marker in WEATHER_TOOL_MARKERS)

    def is_dataset(self, resource: UnifiedResource) -> bool:
        return super().is_dataset(resource) or "weather" in (resource.title or "").lower()

    async def augment_query(self, query: str) -> str:
        lowered = query.lower()
        if not any(keyword in lowered for keyword in WEATHER_KEYWORDS):
            return query
        if self.has_weather_tools() and any(keyword in lowered for keyword in REAL_TIME_KEYWORDS):
            return f"{query}\n\n{REAL_TIME_NOTE}"
        return await super().augment_query(query)
