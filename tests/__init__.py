"""Tests for mcp-weather."""
