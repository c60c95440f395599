"""Canadian weather adapters: weatherapi.com and the MSC GeoMet OGC API."""

import math
from typing import Any, Dict, Optional

from mcp_weather.logging import get_logger
from mcp_weather.providers.base import ProviderClient

logger = get_logger(__name__)

DEFAULT_WEATHERAPI_BASE = "https://api.weatherapi.com/v1"
DEFAULT_GEOMET_API_BASE = "https://api.weather.gc.ca"

MIN_FORECAST_DAYS = 1
MAX_FORECAST_DAYS = 3

# Roughly one degree of latitude
KM_PER_DEGREE = 111.0


def build_query(location: str, province: Optional[str] = None) -> str:
    """Build a weatherapi.com location query for a Canadian place.

    A location that already carries a comma is passed through untouched.
    """
    if "," in location:
        return location
    if province:
        return f"{location},{province},Canada"
    return f"{location},Canada"


def clamp_days(days: int) -> int:
    return min(max(days, MIN_FORECAST_DAYS), MAX_FORECAST_DAYS)


class WeatherApiClient(ProviderClient):
    """Adapter for weatherapi.com current conditions and forecasts."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_WEATHERAPI_BASE, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def get_current(self, location: str, province: Optional[str] = None) -> Optional[Dict[str, Any]]:
        query = build_query(location, province)
        logger.debug("Fetching Canadian current weather", query=query)
        return await self.get_json(f"{self.base_url}/current.json", params={"key": self.api_key, "q": query})

    async def get_forecast(
        self, location: str, province: Optional[str] = None, days: int = MAX_FORECAST_DAYS
    ) -> Optional[Dict[str, Any]]:
        query = build_query(location, province)
        forecast_days = clamp_days(days)
        logger.debug("Fetching Canadian forecast", query=query, days=forecast_days)
        return await self.get_json(
            f"{self.base_url}/forecast.json",
            params={"key": self.api_key, "q": query, "days": forecast_days},
        )


def bounding_box(latitude: float, longitude: float, radius_km: float) -> str:
    """Return a ``minlon,minlat,maxlon,maxlat`` box around a point."""
    lat_buffer = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(latitude))
    lon_buffer = radius_km / (KM_PER_DEGREE * cos_lat) if cos_lat > 1e-6 else 180.0
    return ",".join(
        str(value)
        for value in (
            longitude - lon_buffer,
            latitude - lat_buffer,
            longitude + lon_buffer,
            latitude + lat_buffer,
        )
    )


class GeoMetClient(ProviderClient):
    """Adapter for the Meteorological Service of Canada GeoMet collections."""

    def __init__(self, base_url: str = DEFAULT_GEOMET_API_BASE, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    def collection_url(self, collection: str) -> str:
        return f"{self.base_url}/collections/{collection}/items"

    async def get_climate_normals(self, province: Optional[str] = None, limit: int = 10) -> Optional[Dict[str, Any]]:
        params: Dict[str, Any] = {"f": "json", "limit": limit}
        if province:
            params["PROVINCE"] = province.upper()
        return await self.get_json(self.collection_url("climate-normals"), params=params)

    async def get_stations(
        self, latitude: float, longitude: float, radius_km: float = 50.0, limit: int = 20
    ) -> Optional[Dict[str, Any]]:
        params = {"f": "json", "limit": limit, "bbox": bounding_box(latitude, longitude, radius_km)}
        return await self.get_json(self.collection_url("swob-stations"), params=params)
