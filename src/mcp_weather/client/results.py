"""Rendering of MCP tool results as plain text."""

from typing import Any

from mcp import types


def content_text(item: Any) -> str:
    """Return the text of a content block, or its JSON form when it is not text."""
    if isinstance(item, types.TextContent):
        return item.text
    if hasattr(item, "model_dump_json"):
        return item.model_dump_json()
    return str(item)


def tool_result_text(result: types.CallToolResult) -> str:
    """Join the content blocks of a tool result with newlines."""
    return "\n".join(content_text(item) for item in result.content)


def resource_text(result: types.ReadResourceResult) -> str:
    """Return the text of the first text content of a resource read."""
    for item in result.contents:
        if isinstance(item, types.TextResourceContents):
            return item.text
    return ""
