"""Anthropic completion client."""

import asyncio
from typing import Any, Dict, List, Optional

from anthropic import AsyncAnthropic

from mcp_weather.config import ClientConfig
from mcp_weather.exceptions import CompletionError
from mcp_weather.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LLM_TIMEOUT = 60.0


class CompletionClient:
    """Thin wrapper around the Anthropic messages API with a hard deadline per call."""

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float = DEFAULT_LLM_TIMEOUT,
        client: Optional[AsyncAnthropic] = None,
    ) -> None:
        self.model = model
        self.timeout = timeout
        # A single attempt per call, retries are left to the user
        self.client = client or AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)

    @classmethod
    def from_config(cls, config: ClientConfig) -> "CompletionClient":
        config.require()
        return cls(
            api_key=config.anthropic_api_key or "",
            model=config.anthropic_model or "",
            timeout=config.llm_timeout,
        )

    async def create(
        self,
        messages: List[Dict[str, Any]],
        max_tokens: int,
        tools: Optional[List[Dict[str, Any]]] = None,
        system: Optional[str] = None,
        tool_choice: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Request one completion.

        Args:
            messages: The conversation so far
            max_tokens: Upper bound on generated tokens
            tools: Tool definitions the model may call
            system: Optional system prompt
            tool_choice: How the model may use the tools (e.g. ``{"type": "none"}``)

        Returns:
            The Anthropic ``Message``

        Raises:
            CompletionError: If the call fails or exceeds the deadline
        """
        kwargs: Dict[str, Any] = {"model": self.model, "max_tokens": max_tokens, "messages": messages}
        if tools:
            kwargs["tools"] = tools
        if system:
            kwargs["system"] = system
        if tool_choice:
            kwargs["tool_choice"] = tool_choice

        logger.debug("Requesting completion", model=self.model, messages=len(messages), tools=len(tools or []))
        try:
            return await asyncio.wait_for(self.client.messages.create(**kwargs), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise CompletionError(f"Completion timed out after {self.timeout}s") from e
        except Exception as e:
            raise CompletionError(f"Completion failed: {e}") from e
