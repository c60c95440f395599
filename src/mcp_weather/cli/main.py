"""Main CLI module for mcp-weather."""

import asyncio
import sys
from typing import List, Optional, Sequence

import click
import httpx

from mcp_weather.client.aggregator import UnifiedClient
from mcp_weather.client.chat import ChatLoop, UnifiedShell, close_connections, open_connection, setup_connections
from mcp_weather.client.connection import ConnectionType, McpConnection, infer_connection_type
from mcp_weather.client.llm import CompletionClient
from mcp_weather.client.single import SingleServerClient
from mcp_weather.config import ClientConfig, ServerConfig, load_client_config, load_server_config
from mcp_weather.exceptions import CommunicationError, ConfigurationError
from mcp_weather.logging import configure_logging, get_logger
from mcp_weather.server.app import ServeMode, WeatherServerApp, run_stdio
from mcp_weather.server.factory import WeatherProviders

logger = get_logger(__name__)

TRANSPORTS = ["stdio", "sse", "http", "multi"]
CLIENT_TRANSPORTS = ["sse", "http", "stdio"]


def _run(coro) -> None:
    """Run a coroutine to completion, exiting 1 on an unhandled error."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        click.echo("\nInterrupted, shutting down.", err=True)
    except ConfigurationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.exception("Fatal error", error=str(e))
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(package_name="mcp-weather")
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
)
@click.option("--json-logs", is_flag=True, help="Render logs as JSON")
def main(log_level: str, json_logs: bool) -> None:
    """Weather MCP servers and the clients that talk to them."""
    configure_logging(log_level, json_logs=json_logs)


async def _serve(config: ServerConfig, transport: str, rest_api: bool) -> None:
    async with httpx.AsyncClient() as http_client:
        providers = WeatherProviders.from_config(config, client=http_client)
        if transport == "stdio":
            await run_stdio(config, providers)
        else:
            await WeatherServerApp(config, providers, mode=ServeMode(transport), rest_api=rest_api).serve()


@main.command()
@click.option("--transport", type=click.Choice(TRANSPORTS), default="multi", show_default=True)
@click.option("--host", type=str, default=None, help="Interface to bind (overrides APP_HOST)")
@click.option("--port", type=int, default=None, help="Port to bind (overrides APP_PORT/PORT)")
@click.option("--no-api", is_flag=True, help="Do not serve the REST API")
def serve(transport: str, host: Optional[str], port: Optional[int], no_api: bool) -> None:
    """Run a weather MCP server.

    stdio serves every tool on stdin/stdout. sse serves the US tools, http the
    Canadian tools and the climate dataset, multi both on one port.
    """
    rest_api = transport != "stdio" and not no_api
    try:
        config = load_server_config()
        config.require_for(transport, rest_api=rest_api)
    except ConfigurationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    overrides = {key: value for key, value in (("host", host), ("port", port)) if value is not None}
    if overrides:
        config = config.model_copy(update=overrides)

    _run(_serve(config, transport, rest_api))


def _load_llm_config() -> ClientConfig:
    try:
        config = load_client_config()
        config.require()
    except ConfigurationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)
    return config


async def _chat(config: ClientConfig, target: str, connection_type: ConnectionType) -> None:
    llm = CompletionClient.from_config(config)
    connection = McpConnection(
        f"{connection_type.value}-Client-1", connection_type, target, request_timeout=config.request_timeout
    )
    await connection.connect()
    try:
        client = SingleServerClient(connection, llm)
        await client.initialize()
        click.echo(f"Connected to {connection.server_name or target} with tools: {[t.name for t in connection.tools]}")
        await ChatLoop(client).run()
    finally:
        await close_connections([connection])


@main.command()
@click.argument("target", type=str)
@click.option(
    "--transport",
    type=click.Choice(CLIENT_TRANSPORTS),
    default=None,
    help="Transport to use (inferred from TARGET when omitted)",
)
def chat(target: str, transport: Optional[str]) -> None:
    """Chat with one MCP server.

    TARGET is a server URL, or a command line to spawn over stdio.
    """
    config = _load_llm_config()
    connection_type = ConnectionType(transport.upper()) if transport else infer_connection_type(target)
    _run(_chat(config, target, connection_type))


async def _connect_all(servers: Sequence[str], request_timeout: float) -> List[McpConnection]:
    connections: List[McpConnection] = []
    for target in servers:
        connection_type = infer_connection_type(target)
        identifier = f"{connection_type.value}-Client-{len(connections) + 1}"
        try:
            connections.append(await open_connection(identifier, connection_type, target, request_timeout))
        except CommunicationError as e:
            logger.error("Failed to connect client", connection=identifier, target=target, error=str(e))
            click.echo(f"⚠️ Could not connect to {target}: {e}", err=True)
    return connections


async def _unified(config: ClientConfig, servers: Sequence[str]) -> None:
    llm = CompletionClient.from_config(config)
    if servers:
        connections = await _connect_all(servers, config.request_timeout)
    else:
        connections = await setup_connections()

    try:
        if not connections:
            click.echo("No clients connected. Exiting.")
            return
        client = UnifiedClient(connections, llm, keep_history=config.keep_history)
        await client.initialize()
        await UnifiedShell(client).run()
    finally:
        await close_connections(connections)


@main.command()
@click.option("--server", "servers", multiple=True, help="Server URL to aggregate (repeatable)")
def unified(servers: Sequence[str]) -> None:
    """Aggregate several MCP servers behind one LLM conversation.

    Without --server the connections are set up interactively.
    """
    config = _load_llm_config()
    _run(_unified(config, list(servers)))


if __name__ == "__main__":
    main()
