"""Run the full-capability weather server on stdio."""

from mcp_weather.cli.main import main

if __name__ == "__main__":
    main(["serve", "--transport", "stdio"])
