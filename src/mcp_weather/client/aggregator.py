"""Unified client: one LLM conversation over the tools of several MCP servers."""

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from mcp import types

from mcp_weather.client.catalog import ToolCatalog, UnifiedResource, UnifiedTool
from mcp_weather.client.connection import McpConnection
from mcp_weather.client.llm import CompletionClient
from mcp_weather.client.results import resource_text, tool_result_text
from mcp_weather.exceptions import CapabilityNotSupportedError, CommunicationError, ToolNotFoundError
from mcp_weather.logging import get_logger

logger = get_logger(__name__)

APOLOGY = "Sorry, I encountered an error while processing your query."
DATASET_MARKER = "data.json"
FIRST_MAX_TOKENS = 1500
FOLLOW_UP_MAX_TOKENS = 1000


def split_content(content: Sequence[Any]) -> Tuple[List[str], List[Any]]:
    """Split completion content blocks into text segments and tool-use blocks."""
    texts: List[str] = []
    tool_uses: List[Any] = []
    for block in content:
        if block.type == "text":
            texts.append(block.text)
        elif block.type == "tool_use":
            tool_uses.append(block)
    return texts, tool_uses


def describe_dataset(resource: UnifiedResource, data: Any) -> str:
    """Render a dataset resource for inclusion in a user message."""
    keys = "\n".join(f"- {key}" for key in data) if isinstance(data, dict) else ""
    info = f"Available data from MCP server ({resource.name}) on {resource.source}:\n{keys}".rstrip()
    return f"{info}\n\nFull data:\n{json.dumps(data, indent=2, ensure_ascii=False)}"


class UnifiedClient:
    """Aggregates the tools and resources of several connections.

    Tool calls issued by the LLM are resolved through the catalog and sent to
    the connection that owns the tool, and only to it.
    """

    def __init__(
        self,
        connections: Sequence[McpConnection],
        llm: CompletionClient,
        keep_history: bool = False,
    ) -> None:
        self.connections = list(connections)
        self.llm = llm
        self.keep_history = keep_history
        self.catalog = ToolCatalog()
        self.history: List[Dict[str, Any]] = []
        self._resources: List[UnifiedResource] = []

    async def initialize(self) -> None:
        """Collect the tools and resources of every connection, in connection order.

        A failing connection is logged and skipped. A server that does not
        implement resources only contributes tools.
        """
        self.catalog.clear()
        self._resources.clear()

        for connection in self.connections:
            try:
                tools = await connection.list_tools()
            except Exception as e:
                logger.error("Failed to integrate connection", connection=connection.identifier, error=str(e))
                continue
            self.catalog.extend([UnifiedTool.from_mcp(tool, connection.identifier, connection) for tool in tools])

            try:
                resources = await connection.list_resources()
            except CapabilityNotSupportedError:
                logger.info("Server does not support resources", connection=connection.identifier)
                continue
            except Exception as e:
                logger.error("Error listing resources", connection=connection.identifier, error=str(e))
                continue
            self._resources.extend(
                UnifiedResource.from_mcp(resource, connection.identifier, connection) for resource in resources
            )
            logger.info("Integrated connection", connection=connection.identifier, tools=len(tools))

        logger.info("Unified client ready", tools=len(self.catalog), resources=len(self._resources))

    def get_all_tools(self) -> Tuple[UnifiedTool, ...]:
        return self.catalog.tools

    def get_all_resources(self) -> Tuple[UnifiedResource, ...]:
        return tuple(self._resources)

    def reset(self) -> None:
        """Forget the conversation history."""
        self.history = []

    async def discover_prompt(self) -> Optional[str]:
        """Return the text of the first prompt offered by any connection, in connection order."""
        for connection in self.connections:
            try:
                prompts = await connection.list_prompts()
                if not prompts:
                    continue
                result = await connection.get_prompt(prompts[0].name)
            except CapabilityNotSupportedError:
                continue
            except CommunicationError as e:
                logger.warning("Failed to discover prompts", connection=connection.identifier, error=str(e))
                continue

            texts = [
                message.content.text for message in result.messages if isinstance(message.content, types.TextContent)
            ]
            if texts:
                logger.debug("Using prompt", connection=connection.identifier, prompt=prompts[0].name)
                return "\n\n".join(texts)
        return None

    def is_dataset(self, resource: UnifiedResource) -> bool:
        return DATASET_MARKER in resource.uri.lower()

    async def discover_dataset(self) -> Optional[str]:
        """Read the first dataset resource across connections and render it as text."""
        for resource in self._resources:
            if not self.is_dataset(resource) or resource.connection is None:
                continue
            try:
                result = await resource.connection.read_resource(resource.uri)
                data = json.loads(resource_text(result))
            except (CommunicationError, ValueError) as e:
                logger.warning("Failed to read dataset", source=resource.source, uri=resource.uri, error=str(e))
                continue
            logger.debug("Adding dataset to query", source=resource.source, uri=resource.uri)
            return describe_dataset(resource, data)
        return None

    async def augment_query(self, query: str) -> str:
        """Return the user message content sent for ``query``."""
        dataset = await self.discover_dataset()
        return f"{query}\n\n{dataset}" if dataset else query

    async def dispatch_tool_call(self, tool_use: Any) -> Dict[str, Any]:
        """Run one tool-use block against the connection owning the tool.

        Returns:
            A ``tool_result`` content block for the follow-up completion
        """
        try:
            tool = self.catalog.resolve(tool_use.name)
        except ToolNotFoundError as e:
            logger.error("Tool not found", tool=tool_use.name, error=str(e))
            return {"type": "tool_result", "tool_use_id": tool_use.id, "content": f"Error: {e}", "is_error": True}

        logger.info("Calling tool", tool=tool.name, source=tool.source)
        try:
            result = await tool.connection.call_tool(tool.name, dict(tool_use.input or {}))
        except CommunicationError as e:
            logger.error("Tool call failed", tool=tool.name, source=tool.source, error=str(e))
            return {
                "type": "tool_result",
                "tool_use_id": tool_use.id,
                "content": f"Error calling tool {tool_use.name}: {e}",
                "is_error": True,
            }

        block: Dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": tool_use.id,
            "content": tool_result_text(result),
        }
        if result.isError:
            block["is_error"] = True
        return block

    async def process_query(self, query: str) -> str:
        """Answer ``query`` with the LLM and the aggregated tools.

        Never raises: any failure is logged and answered with a fixed apology.
        """
        try:
            return await self._process_query(query)
        except Exception as e:
            logger.exception("Failed to process query", error=str(e))
            return APOLOGY

    async def _process_query(self, query: str) -> str:
        system = await self.discover_prompt()
        content = await self.augment_query(query)

        messages = list(self.history) if self.keep_history else []
        messages.append({"role": "user", "content": content})
        tools = self.catalog.to_llm_tools()

        response = await self.llm.create(messages, max_tokens=FIRST_MAX_TOKENS, tools=tools, system=system)
        final_text, tool_uses = split_content(response.content)
        messages.append({"role": "assistant", "content": response.content})

        if tool_uses:
            tool_results = [await self.dispatch_tool_call(tool_use) for tool_use in tool_uses]
            messages.append({"role": "user", "content": tool_results})

            # Tools stay defined for the tool_use blocks in the history but may not be called again
            follow_up = await self.llm.create(
                messages,
                max_tokens=FOLLOW_UP_MAX_TOKENS,
                tools=tools,
                system=system,
                tool_choice={"type": "none"},
            )
            follow_up_text, _ = split_content(follow_up.content)
            final_text.extend(follow_up_text)
            messages.append({"role": "assistant", "content": follow_up.content})

        if self.keep_history:
            self.history = messages
        return "\n".join(final_text)
