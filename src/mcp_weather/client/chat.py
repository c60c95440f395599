"""Interactive console front-ends for the weather clients."""

import asyncio
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from mcp_weather.client.aggregator import UnifiedClient
from mcp_weather.client.connection import ConnectionType, McpConnection
from mcp_weather.exceptions import CommunicationError
from mcp_weather.logging import get_logger

logger = get_logger(__name__)

ReadLine = Callable[[str], Awaitable[str]]
Write = Callable[[str], None]
Connect = Callable[[str, ConnectionType, str], Awaitable[McpConnection]]

SENTINELS = ("quit", "exit")

SETUP_CHOICES = {"1": ConnectionType.SSE, "2": ConnectionType.HTTP}
SETUP_MENU = (
    "1. SSE Server (e.g., http://localhost:3000/sse)\n"
    "2. HTTP Server (e.g., http://localhost:3000/mcp)\n"
    "3. Skip (finish setup)"
)

SHELL_HELP = (
    "Available commands:\n"
    "- 'tools' - Show all available tools from all servers\n"
    "- 'resources' - Show all available resources from all servers\n"
    "- 'servers' - Show connected servers\n"
    "- 'chat' - Start chat mode (LLM will choose appropriate tools)\n"
    "- 'help' - Show this help\n"
    "- 'quit' - Exit"
)


class QueryProcessor(Protocol):
    async def process_query(self, query: str) -> str: ...


async def console_read_line(prompt: str) -> str:
    """Read one line from stdin without blocking the event loop. Raises EOFError at end of input."""
    return await asyncio.to_thread(input, prompt)


def console_write(text: str) -> None:
    print(text, flush=True)


class ChatLoop:
    """Read queries until a sentinel or end of input and print the answers."""

    def __init__(
        self,
        processor: QueryProcessor,
        read_line: Optional[ReadLine] = None,
        write: Optional[Write] = None,
        sentinels: Sequence[str] = SENTINELS,
        prompt: str = "\nQuery: ",
    ) -> None:
        self.processor = processor
        self.read_line = read_line or console_read_line
        self.write = write or console_write
        self.sentinels = tuple(s.lower() for s in sentinels)
        self.prompt = prompt

    async def run(self) -> None:
        self.write("Type your queries or 'quit' to exit.")
        while True:
            try:
                query = (await self.read_line(self.prompt)).strip()
            except EOFError:
                break

            if query.lower() in self.sentinels:
                break
            if not query:
                continue

            try:
                response = await self.processor.process_query(query)
            except Exception as e:
                logger.exception("Error processing query", error=str(e))
                self.write(f"\nError: {e}")
                continue
            self.write(f"\n{response}")


async def open_connection(
    identifier: str, connection_type: ConnectionType, target: str, request_timeout: float = 30.0
) -> McpConnection:
    """Create a connection and connect it."""
    connection = McpConnection(identifier, connection_type, target, request_timeout=request_timeout)
    await connection.connect()
    return connection


async def setup_connections(
    read_line: Optional[ReadLine] = None,
    write: Optional[Write] = None,
    connect: Connect = open_connection,
) -> List[McpConnection]:
    """Interactively connect to any number of servers.

    Each round offers SSE, Streamable HTTP or finishing. A connection that
    cannot be established is reported and setup continues with the next round.

    Returns:
        The established connections, in the order they were made
    """
    read_line = read_line or console_read_line
    write = write or console_write
    connections: List[McpConnection] = []

    write("You can connect to multiple MCP servers. Press Enter with empty input when done.")
    while True:
        write(f"\nSetting up Client #{len(connections) + 1}:\n{SETUP_MENU}")
        try:
            choice = (await read_line("Choose connection type (1-3): ")).strip()
        except EOFError:
            break
        if choice in ("3", ""):
            break

        connection_type = SETUP_CHOICES.get(choice)
        if connection_type is None:
            write("Invalid choice, skipping.")
            continue

        try:
            url = (await read_line(f"Enter {connection_type.value} server URL: ")).strip()
        except EOFError:
            break
        if not url:
            write("No URL provided, skipping.")
            continue

        identifier = f"{connection_type.value}-Client-{len(connections) + 1}"
        try:
            connection = await connect(identifier, connection_type, url)
        except CommunicationError as e:
            logger.error("Failed to connect client", connection=identifier, target=url, error=str(e))
            write(f"Failed to connect to {url}: {e}\nContinuing with setup...")
            continue

        connections.append(connection)
        write(f"Successfully connected {identifier}")

    write(f"\nSetup complete! Connected {len(connections)} client(s).")
    return connections


async def close_connections(connections: Sequence[McpConnection]) -> None:
    """Close every connection, reporting but not propagating failures."""
    for connection in connections:
        try:
            await connection.close()
        except Exception as e:
            logger.error("Error cleaning up connection", connection=connection.identifier, error=str(e))


class UnifiedShell:
    """Command shell over a unified client.

    Known commands inspect the aggregated catalog or enter chat mode; any
    other non-empty input is sent to the client as a one-off query.
    """

    def __init__(
        self,
        client: UnifiedClient,
        read_line: Optional[ReadLine] = None,
        write: Optional[Write] = None,
    ) -> None:
        self.client = client
        self.read_line = read_line or console_read_line
        self.write = write or console_write

    def show_tools(self) -> None:
        self.write("\nAvailable tools across all servers:")
        for index, tool in enumerate(self.client.get_all_tools(), start=1):
            self.write(f"  {index}. {tool.name} - {tool.summary} (from {tool.source})")

    def show_resources(self) -> None:
        self.write("\nAvailable resources across all servers:")
        for index, resource in enumerate(self.client.get_all_resources(), start=1):
            self.write(f"  {index}. {resource.name} - {resource.summary} (from {resource.source})")

    def show_servers(self) -> None:
        self.write("\nConnected servers:")
        for index, connection in enumerate(self.client.connections, start=1):
            self.write(f"  {index}. {connection.identifier} ({connection.connection_type.value})")

    async def chat(self) -> None:
        self.write("Starting unified chat mode. The LLM can use tools from any connected server.")
        await ChatLoop(self.client, self.read_line, self.write).run()

    async def handle(self, line: str) -> bool:
        """Execute one shell input. Returns False when the shell should exit."""
        command = line.strip().lower()
        if command in SENTINELS:
            return False

        if command == "tools":
            self.show_tools()
        elif command == "resources":
            self.show_resources()
        elif command == "servers":
            self.show_servers()
        elif command == "chat":
            await self.chat()
        elif command == "help":
            self.write(SHELL_HELP)
        elif command:
            response = await self.client.process_query(line.strip())
            self.write(f"\nResponse:\n{response}")
        else:
            self.write("Unknown command. Type 'help' for available commands.")
        return True

    async def run(self) -> None:
        self.write(
            "All connected servers have been unified into a single interface.\n"
            "The LLM can see and use tools from all servers automatically.\n"
        )
        self.write(SHELL_HELP)
        while True:
            try:
                line = await self.read_line("\n> ")
            except EOFError:
                break
            try:
                if not await self.handle(line):
                    break
            except Exception as e:
                logger.exception("Error executing command", error=str(e))
                self.write(f"Error: {e}")
