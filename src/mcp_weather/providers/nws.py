"""US National Weather Service adapter."""

from typing import Any, Dict, Optional

from mcp_weather.logging import get_logger
from mcp_weather.providers.base import ProviderClient

logger = get_logger(__name__)

DEFAULT_NWS_API_BASE = "https://api.weather.gov"


class NwsClient(ProviderClient):
    """Adapter for api.weather.gov.

    The NWS API only covers US locations; grid point lookups for anything else
    fail and come back as None.
    """

    accept = "application/geo+json"

    def __init__(self, base_url: str = DEFAULT_NWS_API_BASE, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    def url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_alerts(self, state: str) -> Optional[Dict[str, Any]]:
        """Fetch the active alerts for a two-letter US state code."""
        state_code = state.upper()
        logger.debug("Fetching US weather alerts", state=state_code)
        return await self.get_json(self.url("alerts"), params={"area": state_code})

    async def get_points(self, latitude: float, longitude: float) -> Optional[Dict[str, Any]]:
        """Fetch the grid point metadata for a coordinate pair."""
        logger.debug("Fetching NWS grid point", latitude=latitude, longitude=longitude)
        return await self.get_json(self.url(f"points/{latitude:.4f},{longitude:.4f}"))

    async def get_forecast(self, forecast_url: str) -> Optional[Dict[str, Any]]:
        """Fetch a forecast from the URL announced by a grid point."""
        return await self.get_json(self.url(forecast_url))
