"""ToolDispatcher — owns MCP connections and routes calls to the right one.

The dispatcher is the explicit registry of live connections: nothing is kept
in module state, so independent dispatchers (and tests) never see each
other's servers.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mcplink.protocols.errors import (
    ErrorCode,
    MCPError,
    PromptNotFoundError,
    RemoteError,
    ResourceNotFoundError,
    ToolNotFoundError,
)
from mcplink.protocols.mcp.client import MCPClient

if TYPE_CHECKING:
    from mcplink.protocols.mcp.content import Unrecognized
    from mcplink.protocols.mcp.models import (
        DiscoveredPrompt,
        DiscoveredResource,
        DiscoveredTool,
        ServerConnection,
    )

logger = logging.getLogger(__name__)


@dataclass
class _Contribution:
    """What one connection discovered, kept so merged maps can be rebuilt."""

    tools: list[DiscoveredTool]
    resources: list[DiscoveredResource]
    prompts: list[DiscoveredPrompt]


class ToolDispatcher:
    """Maintains connection and name-to-connection maps and dispatches calls.

    Usage::

        async with ToolDispatcher() as dispatcher:
            await dispatcher.connect(ServerConnection(name="fs", command="npx", args=[...]))
            await dispatcher.connect(ServerConnection(name="gh", transport="http", url="..."))

            tools = dispatcher.all_tools()                       # merged, tagged
            result = await dispatcher.execute("read_file", {"path": "/tmp/x"})
    """

    def __init__(self, *, timeout: float | None = 30.0, client_info: dict[str, str] | None = None) -> None:
        self._timeout = timeout
        self._client_info = client_info
        self._clients: dict[str, MCPClient] = {}
        self._contributions: dict[str, _Contribution] = {}
        self._tools: dict[str, DiscoveredTool] = {}
        self._resources: dict[str, DiscoveredResource] = {}
        self._prompts: dict[str, DiscoveredPrompt] = {}

    async def __aenter__(self) -> ToolDispatcher:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    @property
    def clients(self) -> dict[str, MCPClient]:
        return dict(self._clients)

    def get(self, server_name: str) -> MCPClient:
        """Return the live client for *server_name*."""
        try:
            return self._clients[server_name]
        except KeyError:
            msg = f"No connection named {server_name!r}"
            raise KeyError(msg) from None

    async def connect(self, connection: ServerConnection) -> MCPClient:
        """Connect to *connection*, discover its capabilities, and own the client."""
        if connection.name in self._clients:
            msg = f"A connection named {connection.name!r} is already registered"
            raise ValueError(msg)
        client = MCPClient(connection, timeout=self._timeout, client_info=self._client_info)
        await client.connect()
        try:
            await self.register(client)
        except BaseException:
            await client.close()
            raise
        return client

    async def register(self, client: MCPClient) -> None:
        """Discover tools, resources, and prompts from an already connected *client*.

        Servers that do not implement resources or prompts (MethodNotFound)
        simply contribute none.
        """
        tools = await client.discover_tools()
        resources = await _optional(client.discover_resources(), client.name, "resources")
        prompts = await _optional(client.discover_prompts(), client.name, "prompts")

        self._clients[client.name] = client
        contribution = _Contribution(tools, resources, prompts)
        self._contributions[client.name] = contribution
        self._merge(contribution, warn=True)
        logger.info(
            "Registered %s: %d tools, %d resources, %d prompts",
            client.name,
            len(tools),
            len(resources),
            len(prompts),
        )

    def all_tools(self) -> list[DiscoveredTool]:
        """Return the merged list of tool definitions across connections."""
        return list(self._tools.values())

    def all_resources(self) -> list[DiscoveredResource]:
        return list(self._resources.values())

    def all_prompts(self) -> list[DiscoveredPrompt]:
        return list(self._prompts.values())

    async def execute(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> str | Unrecognized | dict[str, Any]:
        """Route a tool call to its owning connection.

        Always returns a value: the normalized result or an error envelope.
        """
        tool = self._tools.get(name)
        if tool is None:
            return ToolNotFoundError(name).to_envelope()
        client = self._clients.get(tool.server_name)
        if client is None:
            return MCPError(f"Connection {tool.server_name!r} is closed", code=ErrorCode.CONNECTION_ERROR).to_envelope()
        return await client.execute_tool(name, arguments or {})

    async def execute_all(
        self, calls: list[tuple[str, dict[str, Any]]]
    ) -> list[str | Unrecognized | dict[str, Any]]:
        """Execute multiple tool calls concurrently, preserving order."""
        return list(await asyncio.gather(*[self.execute(name, args) for name, args in calls]))

    async def read_resource(self, uri: str) -> list[dict[str, Any]] | dict[str, Any]:
        """Read a discovered resource; returns its contents or an error envelope."""
        resource = self._resources.get(uri)
        if resource is None:
            return ResourceNotFoundError(uri).to_envelope()
        try:
            return await self.get(resource.server_name).read_resource(uri)
        except (MCPError, KeyError) as exc:
            return _envelope(exc)

    async def get_prompt(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Render a discovered prompt; returns ``{description?, messages}`` or an error envelope."""
        prompt = self._prompts.get(name)
        if prompt is None:
            return PromptNotFoundError(name).to_envelope()
        try:
            return await self.get(prompt.server_name).get_prompt(name, arguments)
        except (MCPError, KeyError) as exc:
            return _envelope(exc)

    async def disconnect(self, server_name: str) -> None:
        """Close one connection and forget everything it contributed."""
        client = self._clients.pop(server_name, None)
        if client is None:
            return
        self._contributions.pop(server_name, None)
        # Entries this server shadowed fall back to the earlier owner.
        self._tools, self._resources, self._prompts = {}, {}, {}
        for contribution in self._contributions.values():
            self._merge(contribution, warn=False)
        await client.close()

    async def close(self) -> None:
        """Close every owned connection, killing any stdio subprocesses."""
        for server_name in list(self._clients):
            await self.disconnect(server_name)

    def _merge(self, contribution: _Contribution, *, warn: bool) -> None:
        for tool in contribution.tools:
            self._claim(self._tools, tool.name, tool, "tool", warn)
        for resource in contribution.resources:
            self._claim(self._resources, resource.uri, resource, "resource", warn)
        for prompt in contribution.prompts:
            self._claim(self._prompts, prompt.name, prompt, "prompt", warn)

    @staticmethod
    def _claim(table: dict[str, Any], key: str, value: Any, kind: str, warn: bool) -> None:
        existing = table.get(key)
        if warn and existing is not None and existing.server_name != value.server_name:
            logger.warning(
                "%s %r from %s shadows the one from %s",
                kind.capitalize(),
                key,
                value.server_name,
                existing.server_name,
            )
        table[key] = value


async def _optional(discovery: Any, server_name: str, kind: str) -> list[Any]:
    try:
        return list(await discovery)
    except RemoteError as exc:
        if exc.code != ErrorCode.METHOD_NOT_FOUND:
            raise
        logger.info("MCP server %s does not support %s", server_name, kind)
        return []


def _envelope(exc: Exception) -> dict[str, Any]:
    if isinstance(exc, MCPError):
        return exc.to_envelope()
    return MCPError(str(exc), code=ErrorCode.CONNECTION_ERROR).to_envelope()
