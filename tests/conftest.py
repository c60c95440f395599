"""Global test fixtures for mcp-weather tests."""

import os
from typing import Any, Dict, Iterator, List
from unittest.mock import patch

import httpx
import pytest

from mcp_weather.providers import GeoMetClient, NwsClient, WeatherApiClient
from mcp_weather.server.factory import WeatherProviders
from tests.helpers import GEOMET_BASE, NWS_BASE, WEATHERAPI_BASE, RecordingHandler

CONFIG_VARIABLES = [
    "WEATHER_MCP_ENV",
    "SERVER_NAME",
    "APP_HOST",
    "APP_PORT",
    "PORT",
    "LOG_LEVEL",
    "WEATHER_USER_AGENT",
    "USA_WEATHER_API",
    "WEATHERAPI_KEY",
    "WEATHERAPI_BASE",
    "GEOMET_API_BASE",
    "CLIENT_ACCESS_TOKEN",
    "PROVIDER_TIMEOUT",
    "SESSION_CLOSE_TIMEOUT",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_CLAUDE_MODEL",
    "LLM_TIMEOUT",
    "MCP_REQUEST_TIMEOUT",
    "KEEP_HISTORY",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    """Run every test without configuration leaking in from the host.

    The working directory is a temporary one so no ``.env`` or ``config/`` is
    picked up, and ``os.environ`` is restored after the test because
    ``load_dotenv`` writes to it directly.
    """
    for name in CONFIG_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    with patch.dict(os.environ, {}, clear=False):
        yield


@pytest.fixture
def http_handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def http_client(http_handler: RecordingHandler) -> httpx.AsyncClient:
    """An HTTP client whose requests are answered by ``http_handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(http_handler))


@pytest.fixture
def providers(http_client: httpx.AsyncClient) -> WeatherProviders:
    """Provider adapters talking to the mock transport."""
    options: Dict[str, Any] = {"user_agent": "weather-tests/1.0", "timeout": 5.0, "client": http_client}
    return WeatherProviders(
        nws=NwsClient(base_url=NWS_BASE, **options),
        weatherapi=WeatherApiClient(api_key="test-key", base_url=WEATHERAPI_BASE, **options),
        geomet=GeoMetClient(base_url=GEOMET_BASE, **options),
    )


@pytest.fixture
def forecast_periods() -> List[Dict[str, Any]]:
    return [
        {
            "name": "Tonight",
            "temperature": 54,
            "temperatureUnit": "F",
            "windSpeed": "5 mph",
            "windDirection": "W",
            "shortForecast": "Mostly Clear",
        },
        {
            "name": "Friday",
            "temperature": 71,
            "temperatureUnit": "F",
            "windSpeed": "5 to 10 mph",
            "windDirection": "SW",
            "shortForecast": "Sunny",
        },
    ]


@pytest.fixture
def canada_current_payload() -> Dict[str, Any]:
    return {
        "location": {
            "name": "Toronto",
            "region": "Ontario",
            "country": "Canada",
            "lat": 43.67,
            "lon": -79.42,
            "localtime": "2025-01-15 10:00",
        },
        "current": {
            "temp_c": -3.0,
            "feelslike_c": -8.2,
            "condition": {"text": "Light snow"},
            "wind_kph": 19.1,
            "wind_dir": "NW",
            "humidity": 80,
            "pressure_mb": 1015.0,
            "vis_km": 6.0,
            "uv": 1.0,
        },
    }


@pytest.fixture
def canada_forecast_payload(canada_current_payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "location": canada_current_payload["location"],
        "forecast": {
            "forecastday": [
                {
                    "date": "2025-01-15",
                    "day": {
                        "mintemp_c": -7.0,
                        "maxtemp_c": -1.0,
                        "avgtemp_c": -4.0,
                        "condition": {"text": "Snow"},
                        "maxwind_kph": 25.0,
                        "totalprecip_mm": 3.2,
                        "avghumidity": 85,
                        "uv": 1.0,
                    },
                }
            ]
        },
    }
