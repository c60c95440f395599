"""Exceptions for mcp-weather."""

from typing import Any, Dict, Optional, Sequence


class WeatherMcpError(Exception):
    """Base exception for all mcp-weather errors."""


class ConfigurationError(WeatherMcpError):
    """Error raised when there is a configuration problem."""


class CommunicationError(WeatherMcpError):
    """Error raised when talking to an MCP server fails."""

    def __init__(self, message: str, target: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        """Initialize a CommunicationError.

        Args:
            message: Error message
            target: Identifier of the connection or server (if applicable)
            details: Additional error details
        """
        self.target = target
        self.details = details or {}
        super().__init__(message)


class RequestTimeoutError(CommunicationError):
    """Error raised when a request to an MCP server times out."""


class CapabilityNotSupportedError(CommunicationError):
    """Error raised when a server does not implement the requested MCP method."""


class ToolNotFoundError(WeatherMcpError):
    """Error raised when a tool name cannot be resolved in a catalog."""

    def __init__(self, name: str, message: Optional[str] = None) -> None:
        self.name = name
        super().__init__(message or f"Tool {name} not found")


class AmbiguousToolError(ToolNotFoundError):
    """Error raised when a bare tool name is owned by more than one source."""

    def __init__(self, name: str, sources: Sequence[str]) -> None:
        self.sources = list(sources)
        super().__init__(name, f"Tool {name} is provided by several servers: {', '.join(self.sources)}")


class CompletionError(WeatherMcpError):
    """Error raised when the LLM completion call fails or times out."""


class SessionError(WeatherMcpError):
    """Error raised when a transport session is misused."""

    def __init__(self, session_id: str, message: str) -> None:
        self.session_id = session_id
        super().__init__(message)


class SessionNotFoundError(SessionError):
    """Error raised when a session id is not present in a session store."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Session not found: {session_id}")


class DuplicateSessionError(SessionError):
    """Error raised when a second live transport is registered for one session id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Session already registered: {session_id}")
