"""Configuration management for mcp-weather."""

import os
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, TypeVar, cast

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from mcp_weather.exceptions import ConfigurationError
from mcp_weather.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound="EnvConfig")

ENV_NAME_VARIABLE = "WEATHER_MCP_ENV"


class EnvConfig(BaseModel):
    """Base model for configuration that can be overridden from environment variables.

    ``env_vars`` maps a field name to the environment variables that set it, in
    order of preference.
    """

    env_vars: ClassVar[Dict[str, Tuple[str, ...]]] = {}

    log_level: str = Field("INFO", description="Logging level")

    def missing(self, fields: List[str]) -> List[str]:
        """Return the environment variable names of the given fields that have no value."""
        names = []
        for field in fields:
            if not getattr(self, field):
                names.append(self.env_vars.get(field, (field.upper(),))[0])
        return names


class ServerConfig(EnvConfig):
    """Configuration of the weather MCP servers and the HTTP application."""

    env_vars: ClassVar[Dict[str, Tuple[str, ...]]] = {
        "name": ("SERVER_NAME",),
        "host": ("APP_HOST",),
        "port": ("APP_PORT", "PORT"),
        "log_level": ("LOG_LEVEL",),
        "user_agent": ("WEATHER_USER_AGENT",),
        "nws_api_base": ("USA_WEATHER_API",),
        "weatherapi_key": ("WEATHERAPI_KEY",),
        "weatherapi_base": ("WEATHERAPI_BASE",),
        "geomet_api_base": ("GEOMET_API_BASE",),
        "access_token": ("CLIENT_ACCESS_TOKEN",),
        "provider_timeout": ("PROVIDER_TIMEOUT",),
        "session_close_timeout": ("SESSION_CLOSE_TIMEOUT",),
    }

    name: str = Field("weather", description="Name announced by the MCP servers")
    host: str = Field("0.0.0.0", description="Interface the HTTP application binds to")
    port: int = Field(3000, description="Port the HTTP application binds to")
    user_agent: Optional[str] = Field(None, description="User-Agent sent to the weather providers")
    nws_api_base: Optional[str] = Field(None, description="Base URL of the National Weather Service API")
    weatherapi_key: Optional[str] = Field(None, description="API key for weatherapi.com")
    weatherapi_base: str = Field("https://api.weatherapi.com/v1", description="Base URL of weatherapi.com")
    geomet_api_base: str = Field("https://api.weather.gc.ca", description="Base URL of the MSC GeoMet API")
    access_token: Optional[str] = Field(None, description="Bearer token required by the REST API")
    provider_timeout: float = Field(10.0, gt=0, description="Deadline in seconds for each provider call")
    session_close_timeout: float = Field(5.0, gt=0, description="Deadline in seconds for closing one session")

    def require_for(self, transport: str, rest_api: bool = False) -> None:
        """Check that everything the given server mode needs is configured.

        Args:
            transport: One of ``stdio``, ``sse``, ``http`` or ``multi``
            rest_api: Whether the bearer-protected REST API is served as well

        Raises:
            ConfigurationError: Naming every missing environment variable
        """
        fields = ["user_agent"]
        if transport in ("stdio", "sse", "multi") or rest_api:
            fields.append("nws_api_base")
        if transport in ("stdio", "http", "multi") or rest_api:
            fields.append("weatherapi_key")
        if rest_api:
            fields.append("access_token")

        missing = self.missing(fields)
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")


class ClientConfig(EnvConfig):
    """Configuration of the chat clients."""

    env_vars: ClassVar[Dict[str, Tuple[str, ...]]] = {
        "log_level": ("LOG_LEVEL",),
        "anthropic_api_key": ("ANTHROPIC_API_KEY",),
        "anthropic_model": ("ANTHROPIC_CLAUDE_MODEL",),
        "llm_timeout": ("LLM_TIMEOUT",),
        "request_timeout": ("MCP_REQUEST_TIMEOUT",),
        "keep_history": ("KEEP_HISTORY",),
    }

    anthropic_api_key: Optional[str] = Field(None, description="Anthropic API key")
    anthropic_model: Optional[str] = Field(None, description="Anthropic model name")
    llm_timeout: float = Field(60.0, gt=0, description="Deadline in seconds for each completion call")
    request_timeout: float = Field(30.0, gt=0, description="Deadline in seconds for each MCP request")
    keep_history: bool = Field(False, description="Keep the conversation across queries")

    def require(self) -> None:
        """Raise ConfigurationError unless the LLM credentials are configured."""
        missing = self.missing(["anthropic_api_key", "anthropic_model"])
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")


def _load_yaml_config(file_path: Path) -> Dict[str, Any]:
    """Load and parse a YAML configuration file.

    Args:
        file_path: Path to the YAML configuration file

    Returns:
        Dictionary containing the parsed YAML or empty dict if file doesn't exist

    Raises:
        ConfigurationError: If the file exists but parsing fails
    """
    if not file_path.exists():
        logger.debug(f"Config file not found: {file_path}")
        return {}

    try:
        with open(file_path, "r") as f:
            result = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        message = f"Failed to load config file {file_path}: {e}"
        logger.error(message)
        raise ConfigurationError(message)

    if result is None or not isinstance(result, dict):
        logger.warning(f"Config file {file_path} does not contain a dictionary")
        return {}
    return cast(Dict[str, Any], result)


def _deep_merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries, values from ``override`` win."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def _load_environment_config_files(project_dir: Path) -> Dict[str, Any]:
    """Load config/default.yml and config/<WEATHER_MCP_ENV>.yml (default: local.yml)."""
    config_data = _load_yaml_config(project_dir / "config" / "default.yml")

    env_name = os.environ.get(ENV_NAME_VARIABLE, "local")
    env_config = _load_yaml_config(project_dir / "config" / f"{env_name}.yml")
    if env_config:
        logger.debug("Loaded environment configuration", env=env_name)
        config_data = _deep_merge_dicts(config_data, env_config)

    return config_data


def _environment_overrides(config_model: Type[EnvConfig]) -> Dict[str, str]:
    overrides = {}
    for field, names in config_model.env_vars.items():
        for name in names:
            value = os.environ.get(name)
            if value:
                overrides[field] = value
                break
    return overrides


def load_config(config_model: Type[T], project_dir: Optional[Path] = None) -> T:
    """Load configuration from files and environment variables.

    Configuration is loaded in the following order (lowest to highest precedence):
    1. Defaults in the Pydantic model
    2. config/default.yml
    3. config/<WEATHER_MCP_ENV>.yml (default: local.yml)
    4. .env file in the project directory
    5. Environment variables

    Args:
        config_model: The Pydantic model to use for validation
        project_dir: Directory holding ``config/`` and ``.env`` (default: the working directory)

    Returns:
        A validated configuration object

    Raises:
        ConfigurationError: If a config file cannot be parsed or validation fails
    """
    root = Path(project_dir) if project_dir is not None else Path.cwd()

    env_file = root / ".env"
    if env_file.exists():
        # Variables already set in the process environment keep precedence
        load_dotenv(env_file, override=False)
        logger.debug(f"Loaded environment variables from {env_file}")

    config_data = _load_environment_config_files(root)
    config_data.update(_environment_overrides(config_model))

    try:
        return config_model.model_validate(config_data)
    except ValidationError as e:
        error_msg = f"Configuration validation failed: {e}"
        logger.error(error_msg)
        raise ConfigurationError(error_msg)


def load_server_config(project_dir: Optional[Path] = None) -> ServerConfig:
    """Load the server configuration."""
    return load_config(ServerConfig, project_dir)


def load_client_config(project_dir: Optional[Path] = None) -> ClientConfig:
    """Load the client configuration."""
    return load_config(ClientConfig, project_dir)
