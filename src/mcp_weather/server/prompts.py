"""The ``weather-assistant`` prompt."""

from typing import List

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.prompts.base import AssistantMessage, Message

from mcp_weather.server.capabilities import CapabilitySet

PROMPT_NAME = "weather-assistant"


def register_assistant_prompt(server: FastMCP, capabilities: CapabilitySet) -> None:
    """Register the assistant prompt whose text matches ``capabilities``."""

    @server.prompt(name=PROMPT_NAME, description=capabilities.prompt_description)
    def weather_assistant() -> List[Message]:
        return [AssistantMessage(capabilities.prompt_text)]
