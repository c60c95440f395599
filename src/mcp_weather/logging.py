"""Logging configuration for mcp-weather.

All output goes to stderr so that the stdio transport keeps stdout for
protocol messages.
"""

import logging
import sys
from typing import Any, List, Optional

import structlog


def configure_logging(log_level: Optional[str] = "INFO", json_logs: bool = False) -> None:
    """Configure structlog and the standard library logging.

    Args:
        log_level: Name of the log level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Render log events as JSON instead of the console format
    """
    level = getattr(logging, (log_level or "INFO").upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # The SDK and the HTTP stack are chatty at INFO
    for noisy in ("httpx", "mcp", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to a module name.

    Args:
        name: Logger name, usually ``__name__``

    Returns:
        A structlog bound logger
    """
    return structlog.get_logger(name)
