"""Weather tool handlers.

Every handler calls its provider adapter(s) and answers with a single block of
text. Provider failures never escape a handler: they become a sentence telling
the user what could not be retrieved. Argument validation happens in the MCP
layer, from the annotated signatures below, before a handler runs.
"""

from typing import Annotated, Any, Awaitable, Callable, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from mcp_weather.formatting import (
    best_station_match,
    describe_location,
    format_alerts,
    format_canada_current,
    format_canada_forecast,
    format_climate_normals,
    format_forecast,
    format_stations,
    number,
)
from mcp_weather.logging import get_logger
from mcp_weather.providers import GeoMetClient, NwsClient, WeatherApiClient
from mcp_weather.server.capabilities import CapabilitySet

logger = get_logger(__name__)

StateCode = Annotated[
    str, Field(min_length=2, max_length=2, pattern=r"^[A-Za-z]{2}$", description="Two-letter state code (e.g. CA, NY)")
]
Latitude = Annotated[float, Field(ge=-90, le=90, description="Latitude of the location")]
Longitude = Annotated[float, Field(ge=-180, le=180, description="Longitude of the location")]
City = Annotated[str, Field(min_length=1, description="City name (e.g. Toronto, Vancouver)")]
Province = Annotated[Optional[str], Field(description="Province code or name (e.g. ON, BC)")]
ForecastDays = Annotated[int, Field(ge=1, le=3, description="Number of forecast days (1-3)")]
RadiusKm = Annotated[float, Field(gt=0, le=500, description="Search radius in kilometers")]


class WeatherTools:
    """Tool handlers bound to the provider adapters they use."""

    def __init__(
        self,
        nws: Optional[NwsClient] = None,
        weatherapi: Optional[WeatherApiClient] = None,
        geomet: Optional[GeoMetClient] = None,
    ) -> None:
        self.nws = nws
        self.weatherapi = weatherapi
        self.geomet = geomet

    async def _fetch(self, call: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        try:
            return await call(*args, **kwargs)
        except Exception as e:
            logger.exception("Provider call failed", call=getattr(call, "__name__", str(call)), error=str(e))
            return None

    async def get_alerts(self, state: StateCode) -> str:
        """Get weather alerts for a US state."""
        state_code = state.upper()
        data = await self._fetch(self.nws.get_alerts, state_code)
        if data is None:
            return f"Failed to retrieve weather alerts for state: {state_code}"
        return format_alerts(state_code, data.get("features") or [])

    async def get_forecast(self, latitude: Latitude, longitude: Longitude) -> str:
        """Get the weather forecast for a US location."""
        points = await self._fetch(self.nws.get_points, latitude, longitude)
        if points is None:
            return (
                f"Failed to retrieve grid point data for coordinates: {number(latitude)}, {number(longitude)}. "
                "This location may not be supported by the NWS API (only US locations are supported)."
            )

        forecast_url = (points.get("properties") or {}).get("forecast")
        if not forecast_url:
            return "Failed to get forecast URL from grid point data"

        forecast = await self._fetch(self.nws.get_forecast, forecast_url)
        if forecast is None:
            return "Failed to retrieve forecast data"

        periods = (forecast.get("properties") or {}).get("periods") or []
        if not periods:
            return "No forecast periods available"
        return format_forecast(latitude, longitude, periods)

    async def get_canada_current_weather(self, location: City, province: Province = None) -> str:
        """Get current weather for a Canadian location."""
        data = await self._fetch(self.weatherapi.get_current, location, province)
        if data is None or not data.get("current"):
            return f"Failed to retrieve weather data for: {describe_location(location, province)}"
        return format_canada_current(data)

    async def get_canada_weather_forecast(
        self, location: City, province: Province = None, days: ForecastDays = 3
    ) -> str:
        """Get the weather forecast for a Canadian location."""
        data = await self._fetch(self.weatherapi.get_forecast, location, province, days)
        if data is None:
            return f"Failed to retrieve forecast data for: {describe_location(location, province)}"

        forecast_days = (data.get("forecast") or {}).get("forecastday") or []
        if not forecast_days:
            return f"No forecast data available for: {describe_location(location, province)}"
        return format_canada_forecast(data, forecast_days)

    async def get_canada_climate_summary(self, location: City, province: Province = None) -> str:
        """Get climate normals for a Canadian location."""
        data = await self._fetch(self.geomet.get_climate_normals, province)
        if data is None:
            return (
                f'Failed to retrieve Canadian climate normals for "{location}". '
                "Please try again with a specific Canadian city name."
            )

        features = data.get("features") or []
        if not features:
            where = f" in {province}" if province else ""
            return f'No climate normals data found for "{location}"{where}. Try a major Canadian city name.'
        return format_climate_normals(best_station_match(features, location), province)

    async def get_canada_weather_stations(
        self, latitude: Latitude, longitude: Longitude, radius_km: RadiusKm = 50
    ) -> str:
        """Find weather stations near a Canadian location."""
        data = await self._fetch(self.geomet.get_stations, latitude, longitude, radius_km)
        if data is None:
            return (
                f"Failed to find weather stations near {number(latitude)}, {number(longitude)}. "
                "Please verify the coordinates are within Canada."
            )

        features = data.get("features") or []
        if not features:
            return (
                f"No weather stations found within {number(radius_km)}km of coordinates "
                f"{number(latitude)}, {number(longitude)}. The location may be outside Canada "
                "or in a remote area with no active weather stations."
            )
        return format_stations(latitude, longitude, radius_km, features)


def register_tools(server: FastMCP, tools: WeatherTools, capabilities: CapabilitySet) -> None:
    """Register the tools of ``capabilities`` on ``server``."""
    if capabilities.us_weather:
        server.add_tool(tools.get_alerts, name="get-alerts", description="Get weather alerts for a US state")
        server.add_tool(
            tools.get_forecast, name="get-forecast", description="Get weather forecast for a location in the US"
        )

    if capabilities.canada_weather:
        server.add_tool(
            tools.get_canada_current_weather,
            name="get-canada-current-weather",
            description="Get current weather for a Canadian location",
        )
        server.add_tool(
            tools.get_canada_weather_forecast,
            name="get-canada-weather-forecast",
            description="Get weather forecast for a Canadian location",
        )
        server.add_tool(
            tools.get_canada_climate_summary,
            name="get-canada-climate-summary",
            description="Get climate summary and normals for a Canadian location",
        )
        server.add_tool(
            tools.get_canada_weather_stations,
            name="get-canada-weather-stations",
            description="Find weather stations near a Canadian location",
        )
