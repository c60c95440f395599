"""The merged tool and resource catalog of the unified client.

Entries are keyed by ``(source, name)`` and never deduplicated. The name shown
to the LLM is the bare tool name when only one source has it and
``<source>__<name>`` when several do, so every exposed name routes to exactly
one connection.
"""

from collections import Counter
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from mcp import types
from pydantic import BaseModel, ConfigDict, Field

from mcp_weather.client.connection import McpConnection
from mcp_weather.exceptions import AmbiguousToolError, ToolNotFoundError

SOURCE_SEPARATOR = "__"
DEFAULT_DESCRIPTION = "No description"


class UnifiedTool(BaseModel):
    """A tool descriptor tagged with the connection that owns it."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    description: Optional[str] = None
    input_schema: Dict[str, Any] = Field(default_factory=dict)
    source: str
    connection: Optional[McpConnection] = Field(default=None, exclude=True, repr=False)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source, self.name)

    @property
    def summary(self) -> str:
        return self.description or DEFAULT_DESCRIPTION

    @classmethod
    def from_mcp(cls, tool: types.Tool, source: str, connection: Optional[McpConnection] = None) -> "UnifiedTool":
        return cls(
            name=tool.name,
            description=tool.description,
            input_schema=dict(tool.inputSchema or {}),
            source=source,
            connection=connection,
        )

    def to_mcp(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, inputSchema=self.input_schema)


class UnifiedResource(BaseModel):
    """A resource descriptor tagged with the connection that owns it."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    title: Optional[str] = None
    description: Optional[str] = None
    uri: str
    mime_type: Optional[str] = None
    source: str
    connection: Optional[McpConnection] = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_mcp(
        cls, resource: types.Resource, source: str, connection: Optional[McpConnection] = None
    ) -> "UnifiedResource":
        return cls(
            name=resource.name,
            title=getattr(resource, "title", None),
            description=resource.description,
            uri=str(resource.uri),
            mime_type=resource.mimeType,
            source=source,
            connection=connection,
        )

    @property
    def summary(self) -> str:
        return self.description or DEFAULT_DESCRIPTION

    def to_mcp(self) -> types.Resource:
        return types.Resource(
            name=self.name,
            title=self.title,
            description=self.description,
            uri=self.uri,  # type: ignore[arg-type]
            mimeType=self.mime_type,
        )


class ToolCatalog:
    """Tools of several connections, in registration order."""

    def __init__(self) -> None:
        self._tools: List[UnifiedTool] = []

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[UnifiedTool]:
        return iter(self._tools)

    def add(self, tool: UnifiedTool) -> None:
        self._tools.append(tool)

    def extend(self, tools: Sequence[UnifiedTool]) -> None:
        self._tools.extend(tools)

    def clear(self) -> None:
        self._tools.clear()

    @property
    def tools(self) -> Tuple[UnifiedTool, ...]:
        return tuple(self._tools)

    def _name_counts(self) -> Counter:
        return Counter(tool.name for tool in self._tools)

    def exposed_name(self, tool: UnifiedTool) -> str:
        """Return the name under which ``tool`` is offered to the LLM."""
        if self._name_counts()[tool.name] > 1:
            return f"{tool.source}{SOURCE_SEPARATOR}{tool.name}"
        return tool.name

    def to_llm_tools(self) -> List[Dict[str, Any]]:
        """Return the catalog as Anthropic tool definitions."""
        definitions = []
        for tool in self._tools:
            definitions.append(
                {
                    "name": self.exposed_name(tool),
                    "description": f"{tool.summary} (from {tool.source})",
                    "input_schema": tool.input_schema or {"type": "object", "properties": {}},
                }
            )
        return definitions

    def resolve(self, name: str) -> UnifiedTool:
        """Find the single tool an exposed or source-qualified name refers to.

        Raises:
            ToolNotFoundError: If no tool matches
            AmbiguousToolError: If a bare name is owned by several sources
        """
        matches = [tool for tool in self._tools if tool.name == name]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise AmbiguousToolError(name, [tool.source for tool in matches])

        source, separator, tool_name = name.partition(SOURCE_SEPARATOR)
        if separator:
            for tool in self._tools:
                if tool.source == source and tool.name == tool_name:
                    return tool
        raise ToolNotFoundError(name)
