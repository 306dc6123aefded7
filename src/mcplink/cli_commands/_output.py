"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

from mcplink.protocols.errors import is_error_envelope
from mcplink.protocols.mcp.content import Unrecognized

if TYPE_CHECKING:
    from mcplink.config import ConnectionsConfig
    from mcplink.protocols.mcp.models import DiscoveredPrompt, DiscoveredResource, DiscoveredTool

console = Console()


def print_tools_table(tools: list[DiscoveredTool]) -> None:
    """Pretty-print discovered tools as a table."""
    table = Table(title="Discovered Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Parameters")

    for tool in tools:
        properties = tool.input_schema.get("properties") or {}
        required = set(tool.input_schema.get("required") or [])
        params = ", ".join(f"{name}*" if name in required else name for name in properties)
        table.add_row(tool.name, _truncate(tool.description), params or "-")

    console.print(table)


def print_resources_table(resources: list[DiscoveredResource]) -> None:
    table = Table(title="Discovered Resources")
    table.add_column("URI", style="cyan")
    table.add_column("Name")
    table.add_column("MIME type")
    table.add_column("Description")

    for resource in resources:
        table.add_row(
            resource.uri,
            resource.name,
            resource.mime_type or "-",
            _truncate(resource.description),
        )

    console.print(table)


def print_prompts_table(prompts: list[DiscoveredPrompt]) -> None:
    table = Table(title="Discovered Prompts")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Arguments")

    for prompt in prompts:
        args = ", ".join(f"{arg.name}*" if arg.required else arg.name for arg in prompt.arguments)
        table.add_row(prompt.name, _truncate(prompt.description), args or "-")

    console.print(table)


def print_servers_table(config: ConnectionsConfig) -> None:
    """Pretty-print configured server connections."""
    table = Table(title="Configured Servers")
    table.add_column("Name", style="cyan")
    table.add_column("Transport")
    table.add_column("Target")

    for server in config.servers:
        if server.transport == "stdio":
            target = " ".join([server.command or "", *server.args])
        else:
            target = server.url or ""
        table.add_row(server.name, server.transport, _truncate(target))

    console.print(table)


def print_result(result: Any) -> bool:
    """Print a call result; returns ``False`` if it was an error envelope."""
    if is_error_envelope(result):
        error = result["error"]
        console.print(f"[red]Error {error['code']}:[/red] {error['message']}", highlight=False)
        return False
    if isinstance(result, Unrecognized):
        console.print("[yellow]Unrecognized result shape:[/yellow]")
        console.print_json(json.dumps(result.raw, default=str))
        return True
    if isinstance(result, str):
        console.print(result, markup=False, highlight=False)
        return True
    console.print_json(json.dumps(result, default=str))
    return True


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
