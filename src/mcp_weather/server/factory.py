"""Weather MCP server factory."""

from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from mcp.server.fastmcp import FastMCP

from mcp_weather.config import ServerConfig
from mcp_weather.logging import get_logger
from mcp_weather.providers import GeoMetClient, NwsClient, WeatherApiClient
from mcp_weather.providers.nws import DEFAULT_NWS_API_BASE
from mcp_weather.server.capabilities import CapabilitySet, TransportKind, capabilities_for
from mcp_weather.server.prompts import register_assistant_prompt
from mcp_weather.server.resources import register_dataset_resource
from mcp_weather.server.tools import WeatherTools, register_tools

logger = get_logger(__name__)

DEFAULT_SERVER_NAME = "weather"

ServerFactory = Callable[[], FastMCP]


@dataclass
class WeatherProviders:
    """The provider adapters shared by all server instances of a process."""

    nws: NwsClient
    weatherapi: WeatherApiClient
    geomet: GeoMetClient

    @classmethod
    def from_config(cls, config: ServerConfig, client: Optional[httpx.AsyncClient] = None) -> "WeatherProviders":
        """Build the adapters from a server configuration.

        Args:
            config: The server configuration
            client: Optional shared HTTP client

        Returns:
            The provider bundle
        """
        options = {"timeout": config.provider_timeout, "client": client}
        return cls(
            nws=NwsClient(
                base_url=config.nws_api_base or DEFAULT_NWS_API_BASE, user_agent=config.user_agent, **options
            ),
            weatherapi=WeatherApiClient(
                api_key=config.weatherapi_key or "",
                base_url=config.weatherapi_base,
                user_agent=config.user_agent,
                **options,
            ),
            geomet=GeoMetClient(base_url=config.geomet_api_base, user_agent=config.user_agent, **options),
        )


def create_weather_server(
    capabilities: CapabilitySet,
    transport: TransportKind,
    providers: WeatherProviders,
    name: str = DEFAULT_SERVER_NAME,
) -> FastMCP:
    """Create a weather MCP server exposing exactly ``capabilities``.

    Args:
        capabilities: Tools, resources and prompt text to expose
        transport: Transport the server will be bound to
        providers: Provider adapters used by the tool handlers
        name: Server name announced during initialization

    Returns:
        A configured FastMCP server, not yet bound to a transport
    """
    server = FastMCP(name)

    tools = WeatherTools(nws=providers.nws, weatherapi=providers.weatherapi, geomet=providers.geomet)
    register_tools(server, tools, capabilities)
    if capabilities.climate_dataset:
        register_dataset_resource(server)
    register_assistant_prompt(server, capabilities)

    logger.debug(
        "Created weather server",
        server=name,
        transport=TransportKind(transport).value,
        capabilities=capabilities.name,
    )
    return server


def server_factory(
    providers: WeatherProviders,
    transport: TransportKind,
    capabilities: Optional[CapabilitySet] = None,
    name: str = DEFAULT_SERVER_NAME,
) -> ServerFactory:
    """Return a zero-argument factory building fresh servers for ``transport``.

    The capability set defaults to the one selected for the transport.
    """
    selected = capabilities or capabilities_for(transport)

    def factory() -> FastMCP:
        return create_weather_server(selected, transport, providers, name=name)

    return factory
