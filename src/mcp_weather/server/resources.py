"""The bundled weather and climate dataset resource."""

from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from mcp_weather.logging import get_logger

logger = get_logger(__name__)

DATASET_URI = "file:///data.json"
DATASET_NAME = "weather-data"
DATASET_PATH = Path(__file__).resolve().parent.parent / "data" / "data.json"


def read_dataset(path: Path = DATASET_PATH) -> str:
    """Return the dataset as JSON text.

    Raises:
        FileNotFoundError: If the dataset is missing from the installation
    """
    logger.debug("Reading climate dataset", path=str(path))
    return path.read_text(encoding="utf-8")


def register_dataset_resource(server: FastMCP, path: Optional[Path] = None) -> None:
    """Expose the climate dataset as the ``weather-data`` resource."""
    dataset_path = path or DATASET_PATH

    @server.resource(
        DATASET_URI,
        name=DATASET_NAME,
        title="Weather and Climate Data",
        description="Comprehensive weather and climate change dataset",
        mime_type="application/json",
    )
    def weather_data() -> str:
        return read_dataset(dataset_path)
