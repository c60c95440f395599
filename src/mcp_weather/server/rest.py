"""Bearer-protected REST API in front of the weather tools.

The controllers are MCP clients: each request opens an in-process session
against a fresh full-capability server and calls one tool. Every response body
has the shape ``{"success": bool, "data": ..., "error": str}``.
"""

import asyncio
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from mcp.shared.memory import create_connected_server_and_client_session

from mcp_weather.client.results import tool_result_text
from mcp_weather.exceptions import CommunicationError, RequestTimeoutError
from mcp_weather.logging import get_logger
from mcp_weather.server.factory import DEFAULT_SERVER_NAME, ServerFactory

logger = get_logger(__name__)

DEFAULT_GATEWAY_TIMEOUT = 30.0


class ToolGateway:
    """Calls weather tools through an in-process MCP client session."""

    def __init__(
        self,
        server_factory: ServerFactory,
        timeout: float = DEFAULT_GATEWAY_TIMEOUT,
        server_name: str = DEFAULT_SERVER_NAME,
    ) -> None:
        self.server_factory = server_factory
        self.timeout = timeout
        self.server_name = server_name

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> str:
        """Call tool ``name`` and return its text.

        Raises:
            RequestTimeoutError: If the call did not finish in time
            CommunicationError: If the tool reported an error
        """
        server = self.server_factory()
        result = None
        # Failures escaping the session context surface as exception groups
        async with create_connected_server_and_client_session(server._mcp_server) as session:
            try:
                result = await asyncio.wait_for(session.call_tool(name, arguments), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning("Tool call timed out", tool=name, timeout=self.timeout)

        if result is None:
            raise RequestTimeoutError(f"Tool {name} timed out after {self.timeout}s", target=name)

        text = tool_result_text(result)
        if result.isError:
            raise CommunicationError(text or f"Tool {name} failed", target=name)
        return text


class BearerTokenAuth:
    """FastAPI dependency checking ``Authorization: Bearer <token>``."""

    def __init__(self, token: str) -> None:
        self.token = token

    async def __call__(self, authorization: Optional[str] = Header(None)) -> None:
        token = None
        if authorization and authorization.lower().startswith("bearer "):
            token = authorization[len("bearer ") :].strip()
        if not token:
            raise HTTPException(status_code=401, detail="Unauthorized: No token provided")
        if not secrets.compare_digest(token.encode("utf-8"), self.token.encode("utf-8")):
            raise HTTPException(status_code=403, detail="Forbidden: Invalid token!")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _failure(error: str, details: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse({"success": False, "error": error, "details": details}, status_code=status_code)


def create_api_router(gateway: ToolGateway, access_token: str) -> APIRouter:
    """Build the ``/api`` router.

    Args:
        gateway: Gateway used to call the weather tools
        access_token: The bearer token clients must present

    Returns:
        The router, ready to be included in a FastAPI app
    """
    router = APIRouter(prefix="/api", dependencies=[Depends(BearerTokenAuth(access_token))], tags=["weather"])

    async def call(tool: str, arguments: Dict[str, Any]) -> str:
        logger.info("REST request", tool=tool, arguments=arguments)
        return await gateway.call_tool(tool, arguments)

    def mcp_info(tool: str) -> Dict[str, str]:
        return {"serverName": gateway.server_name, "toolUsed": tool}

    @router.get("/us-weather/alerts")
    async def us_weather_alerts(state: Optional[str] = None) -> Any:
        if not state or len(state) != 2 or not state.isalpha():
            raise HTTPException(
                status_code=400, detail="State parameter is required and must be a 2-letter state code (e.g., CA, NY)"
            )
        try:
            text = await call("get-alerts", {"state": state.upper()})
        except Exception as e:
            logger.error("Failed to retrieve US weather alerts", state=state, error=str(e))
            return _failure("Failed to retrieve US weather alerts via MCP", str(e))
        return {
            "success": True,
            "data": {
                "state": state.upper(),
                "alerts": text,
                "timestamp": _timestamp(),
                "mcpInfo": mcp_info("get-alerts"),
            },
        }

    @router.get("/us-weather/forecast")
    async def us_weather_forecast(lat: Optional[str] = None, lon: Optional[str] = None) -> Any:
        if not lat or not lon:
            raise HTTPException(
                status_code=400, detail="Both latitude (lat) and longitude (lon) parameters are required"
            )
        try:
            latitude, longitude = float(lat), float(lon)
        except ValueError:
            raise HTTPException(status_code=400, detail="Latitude and longitude must be valid numbers")
        try:
            text = await call("get-forecast", {"latitude": latitude, "longitude": longitude})
        except Exception as e:
            logger.error("Failed to retrieve US weather forecast", latitude=latitude, longitude=longitude, error=str(e))
            return _failure("Failed to retrieve US weather forecast via MCP", str(e))
        return {
            "success": True,
            "data": {
                "coordinates": {"latitude": latitude, "longitude": longitude},
                "forecast": text,
                "timestamp": _timestamp(),
                "mcpInfo": mcp_info("get-forecast"),
            },
        }

    @router.get("/canada-weather/current")
    async def canada_current_weather(location: Optional[str] = None, province: Optional[str] = None) -> Any:
        if not location:
            raise HTTPException(status_code=400, detail="Location parameter is required (e.g., Toronto, Vancouver)")
        arguments: Dict[str, Any] = {"location": location}
        if province:
            arguments["province"] = province
        try:
            text = await call("get-canada-current-weather", arguments)
        except Exception as e:
            logger.error("Failed to retrieve Canadian current weather", location=location, error=str(e))
            return _failure("Failed to retrieve Canadian current weather", str(e))
        return {
            "success": True,
            "data": {
                "location": location,
                "province": province,
                "weather": text,
                "timestamp": _timestamp(),
                "mcpInfo": mcp_info("get-canada-current-weather"),
            },
        }

    @router.get("/canada-weather/forecast")
    async def canada_weather_forecast(
        location: Optional[str] = None, province: Optional[str] = None, days: Optional[str] = None
    ) -> Any:
        if not location:
            raise HTTPException(status_code=400, detail="Location parameter is required (e.g., Toronto, Vancouver)")
        try:
            forecast_days = int(days) if days else 3
        except ValueError:
            forecast_days = 0
        if not 1 <= forecast_days <= 3:
            raise HTTPException(status_code=400, detail="Days parameter must be a number between 1 and 3")

        arguments: Dict[str, Any] = {"location": location, "days": forecast_days}
        if province:
            arguments["province"] = province
        try:
            text = await call("get-canada-weather-forecast", arguments)
        except Exception as e:
            logger.error("Failed to retrieve Canadian weather forecast", location=location, error=str(e))
            return _failure("Failed to retrieve Canadian weather forecast", str(e))
        return {
            "success": True,
            "data": {
                "location": location,
                "province": province,
                "forecast": text,
                "days": forecast_days,
                "timestamp": _timestamp(),
                "mcpInfo": mcp_info("get-canada-weather-forecast"),
            },
        }

    return router


def install_error_handlers(app: FastAPI) -> None:
    """Render HTTP errors in the ``{success, error}`` envelope."""

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse({"success": False, "error": exc.detail}, status_code=exc.status_code)
