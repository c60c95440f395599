"""Capability sets exposed by the weather servers.

Which tools, resources and prompt a server instance exposes is decided here,
once, from the transport it is created for.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class TransportKind(str, Enum):
    """Transports a weather server can be bound to."""

    STDIO = "stdio"
    SSE = "sse"
    HTTP = "http"


US_PROMPT = """You are a helpful weather assistant that can provide information about:

**United States Weather (via NWS):**
1. Weather forecasts for specific coordinates
2. Weather alerts for US states
3. Current conditions and detailed forecasts

When responding to users:
- For US locations, use the NWS weather tools (get-alerts, get-forecast)
- Use a friendly, conversational tone
- Always include relevant temperature units (°F)
- Format alerts and warnings prominently
- If location is ambiguous, ask for clarification

Note: Canadian weather data is only available via the Streamable HTTP transport.

Remember to format your responses clearly with appropriate sections for readability."""

CANADA_PROMPT = """You are a helpful weather assistant that can provide information about:

**Canadian Weather:**
1. Current weather conditions for Canadian cities
2. Short-range forecasts (1 to 3 days)
3. Climate normals (1981-2010) from MSC GeoMet
4. Weather station locations and information

**General Climate Data:**
- Historical climate information from the weather-data resource
- Climate trends and patterns
- Long-term climate projections

When responding to users:
- For Canadian locations, use the Canadian weather tools (get-canada-current-weather, \
get-canada-weather-forecast, get-canada-climate-summary, get-canada-weather-stations)
- For historical climate data, reference the weather-data resource
- Use a friendly, conversational tone
- Always specify temperature units (°C for Canada)
- If location is ambiguous, ask for clarification about region

Note: US weather data (NWS) is only available via the SSE transport.

Remember to format your responses clearly with appropriate sections for readability."""

ALL_PROMPT = """You are a helpful weather assistant for North America.

- For US locations, use the NWS tools (get-alerts, get-forecast) and include °F
- For Canadian locations, use the Canadian tools (get-canada-current-weather, \
get-canada-weather-forecast, get-canada-climate-summary, get-canada-weather-stations) and include °C
- For historical climate data, reference the weather-data resource
- Format alerts and warnings prominently
- If location is ambiguous, ask for clarification"""


class CapabilitySet(BaseModel):
    """What a weather server instance exposes."""

    model_config = ConfigDict(frozen=True)

    name: str
    us_weather: bool = False
    canada_weather: bool = False
    climate_dataset: bool = False
    prompt_description: str
    prompt_text: str


US_WEATHER = CapabilitySet(
    name="us-weather",
    us_weather=True,
    prompt_description="Weather assistant that provides US weather forecasts and alerts",
    prompt_text=US_PROMPT,
)

CANADA_WEATHER = CapabilitySet(
    name="canada-weather",
    canada_weather=True,
    climate_dataset=True,
    prompt_description="Weather assistant that provides climate data and Canadian weather information",
    prompt_text=CANADA_PROMPT,
)

ALL_WEATHER = CapabilitySet(
    name="all-weather",
    us_weather=True,
    canada_weather=True,
    climate_dataset=True,
    prompt_description="Weather assistant for US and Canadian weather and climate data",
    prompt_text=ALL_PROMPT,
)

_BY_TRANSPORT = {
    TransportKind.SSE: US_WEATHER,
    TransportKind.HTTP: CANADA_WEATHER,
    TransportKind.STDIO: ALL_WEATHER,
}


def capabilities_for(transport: TransportKind) -> CapabilitySet:
    """Return the capability set a server created for ``transport`` exposes."""
    return _BY_TRANSPORT[TransportKind(transport)]
