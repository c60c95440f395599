"""Command line interface for mcp-weather."""
