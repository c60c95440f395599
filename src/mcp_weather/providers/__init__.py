"""Weather provider adapters.

Each adapter turns one query into one outbound HTTP call and returns the parsed
JSON payload, or ``None`` when no data could be retrieved.
"""

from mcp_weather.providers.base import ProviderClient, fetch_json
from mcp_weather.providers.canada import GeoMetClient, WeatherApiClient
from mcp_weather.providers.nws import NwsClient

__all__ = [
    "GeoMetClient",
    "NwsClient",
    "ProviderClient",
    "WeatherApiClient",
    "fetch_json",
]
