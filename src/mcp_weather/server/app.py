"""HTTP application hosting the weather MCP transports and the REST API."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Dict, List

import uvicorn
from fastapi import FastAPI
from starlette.routing import Mount, Route

from mcp_weather import __version__
from mcp_weather.config import ServerConfig
from mcp_weather.logging import get_logger
from mcp_weather.server.capabilities import ALL_WEATHER, TransportKind
from mcp_weather.server.factory import WeatherProviders, create_weather_server, server_factory
from mcp_weather.server.rest import ToolGateway, create_api_router, install_error_handlers
from mcp_weather.server.sessions import SessionStore
from mcp_weather.server.sse import SseEndpoint
from mcp_weather.server.streamable_http import StreamableHttpEndpoint

logger = get_logger(__name__)

STREAMABLE_HTTP_PATHS = ("/mcp", "/http")


class ServeMode(str, Enum):
    """Which transports an HTTP application serves."""

    SSE = "sse"
    HTTP = "http"
    MULTI = "multi"


class WeatherServerApp:
    """Owns the session stores and builds the FastAPI application around them."""

    def __init__(
        self,
        config: ServerConfig,
        providers: WeatherProviders,
        mode: ServeMode = ServeMode.MULTI,
        rest_api: bool = True,
    ) -> None:
        self.config = config
        self.providers = providers
        self.mode = ServeMode(mode)
        self.rest_api = rest_api

        self.sse_sessions = SessionStore(TransportKind.SSE, close_timeout=config.session_close_timeout)
        self.http_sessions = SessionStore(TransportKind.HTTP, close_timeout=config.session_close_timeout)
        self.sse = SseEndpoint(self.sse_sessions, server_factory(providers, TransportKind.SSE, name=config.name))
        self.streamable_http = StreamableHttpEndpoint(
            self.http_sessions, server_factory(providers, TransportKind.HTTP, name=config.name)
        )
        self.app = self.create_app()

    @property
    def transports(self) -> List[str]:
        if self.mode == ServeMode.MULTI:
            return [TransportKind.SSE.value, TransportKind.HTTP.value]
        return [self.mode.value]

    def status(self) -> Dict[str, Any]:
        return {
            "status": "running",
            "server": self.config.name,
            "version": __version__,
            "transports": self.transports,
            "sessions": {"sse": len(self.sse_sessions), "http": len(self.http_sessions)},
            "restApi": self.rest_api,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def shutdown(self) -> None:
        """Close every live session of both transports."""
        logger.info("Shutting down weather server", sse=len(self.sse_sessions), http=len(self.http_sessions))
        await self.sse_sessions.close_all()
        await self.http_sessions.close_all()

    def create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncIterator[None]:
            logger.info("Weather server started", transports=self.transports, rest_api=self.rest_api)
            try:
                yield
            finally:
                await self.shutdown()

        app = FastAPI(title=f"{self.config.name} MCP Server", version=__version__, lifespan=lifespan)

        if self.mode in (ServeMode.SSE, ServeMode.MULTI):
            app.router.routes.append(Route("/sse", endpoint=self.sse, methods=["GET"]))
            app.router.routes.append(Mount("/messages", app=self.sse.handle_post_message))

        if self.mode in (ServeMode.HTTP, ServeMode.MULTI):
            for path in STREAMABLE_HTTP_PATHS:
                app.router.routes.append(Route(path, endpoint=self.streamable_http, methods=["GET", "POST", "DELETE"]))

        if self.rest_api:
            gateway = ToolGateway(
                server_factory(self.providers, TransportKind.STDIO, ALL_WEATHER, name=self.config.name),
                server_name=self.config.name,
            )
            app.include_router(create_api_router(gateway, self.config.access_token or ""))
            install_error_handlers(app)

        @app.get("/", include_in_schema=False)
        async def read_root() -> Dict[str, Any]:
            return self.status()

        return app

    async def serve(self) -> None:
        """Run the application with uvicorn until it is told to stop."""
        config = uvicorn.Config(
            app=self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
            lifespan="on",
            # Long-lived SSE streams would otherwise hold shutdown open
            timeout_graceful_shutdown=int(self.config.session_close_timeout),
        )
        server = uvicorn.Server(config)
        logger.info("Starting HTTP server", host=self.config.host, port=self.config.port, mode=self.mode.value)
        await server.serve()


async def run_stdio(config: ServerConfig, providers: WeatherProviders) -> None:
    """Serve the full-capability weather server on stdin/stdout."""
    server = create_weather_server(ALL_WEATHER, TransportKind.STDIO, providers, name=config.name)
    logger.info("Starting stdio server", server=config.name)
    await server.run_stdio_async()
