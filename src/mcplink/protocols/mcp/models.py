"""MCP models — JSON-RPC 2.0 messages and capability definitions.

Implements the message format used by the Model Context Protocol for
tool, resource, and prompt discovery and invocation, plus the connection
descriptor the client uses to reach a server.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

PROTOCOL_VERSION = "2024-11-05"
SESSION_HEADER = "mcp-session-id"

# Advertised in both directions; this implementation supports no dynamic updates.
CAPABILITIES: dict[str, dict[str, bool]] = {
    "tools": {"listChanged": False},
    "resources": {"subscribe": False, "listChanged": False},
    "prompts": {"listChanged": False},
}


def capabilities() -> dict[str, dict[str, bool]]:
    """Return a fresh copy of the fixed capabilities payload."""
    return {key: dict(flags) for key, flags in CAPABILITIES.items()}


# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request, or a notification when ``id`` is ``None``."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    id: int | str | None = None
    params: dict[str, Any] = {}

    @property
    def is_notification(self) -> bool:
        return self.id is None

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the wire; notifications carry no ``id`` key."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.id is not None:
            data["id"] = self.id
        data["params"] = self.params
        return data


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: int | str | None = None
    result: Any = None
    error: JsonRpcError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with exactly one of ``result`` / ``error``."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump(exclude_none=True)
        else:
            data["result"] = self.result
        return data


# ---------------------------------------------------------------------------
# MCP capability definitions
# ---------------------------------------------------------------------------


class ToolDefinition(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ResourceDefinition(BaseModel):
    """A URI-addressable resource as returned by ``resources/list``."""

    model_config = ConfigDict(populate_by_name=True)

    uri: str
    name: str = ""
    description: str = ""
    mime_type: str | None = Field(default=None, alias="mimeType")

    def to_wire(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "uri": self.uri,
            "name": self.name,
            "description": self.description,
        }
        if self.mime_type is not None:
            data["mimeType"] = self.mime_type
        return data


class PromptArgument(BaseModel):
    """A single argument accepted by a prompt template."""

    name: str
    description: str = ""
    required: bool = False


class PromptDefinition(BaseModel):
    """A named, parameterized message template as returned by ``prompts/list``."""

    name: str
    description: str = ""
    arguments: list[PromptArgument] = []

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": [arg.model_dump() for arg in self.arguments],
        }


# ---------------------------------------------------------------------------
# Discovered definitions, tagged with the connection that serves them
# ---------------------------------------------------------------------------


class DiscoveredTool(ToolDefinition):
    """A tool definition tagged with the server connection that owns it."""

    server_name: str


class DiscoveredResource(ResourceDefinition):
    """A resource definition tagged with the server connection that owns it."""

    server_name: str


class DiscoveredPrompt(PromptDefinition):
    """A prompt definition tagged with the server connection that owns it."""

    server_name: str


# ---------------------------------------------------------------------------
# Connection descriptor
# ---------------------------------------------------------------------------


class ServerConnection(BaseModel):
    """Describes how to reach an MCP server.

    Example YAML::

        name: filesystem
        transport: stdio
        command: npx
        args: ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"]
        env:
          DEBUG: "0"

        name: github
        transport: http
        url: https://api.githubcopilot.com/mcp/
        headers:
          Authorization: "Bearer ${GITHUB_TOKEN}"
    """

    name: str = Field(min_length=1)
    transport: Literal["stdio", "http"] = "stdio"
    command: str | None = None
    args: list[str] = []
    env: dict[str, str] = {}
    url: str | None = None
    headers: dict[str, str] = {}

    @model_validator(mode="after")
    def _validate_transport_config(self) -> ServerConnection:
        if self.transport == "stdio" and not self.command:
            msg = "ServerConnection with stdio transport must specify 'command'"
            raise ValueError(msg)
        if self.transport == "http" and not self.url:
            msg = "ServerConnection with http transport must specify 'url'"
            raise ValueError(msg)
        return self
