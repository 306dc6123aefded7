"""``mcplink tools`` — discover and call tools on MCP servers."""

from __future__ import annotations

import asyncio
import sys
from typing import Any

import click

from mcplink.cli_commands._connection import build_connection, connection_options, parse_json_args
from mcplink.cli_commands._output import console, print_result, print_tools_table


@click.group()
def tools() -> None:
    """Discover and call tools."""


@tools.command("discover")
@connection_options
@click.option("--name", "names", multiple=True, help="Only show these tools (repeatable).")
def discover(
    server: str,
    transport: str,
    headers: tuple[str, ...],
    config_path: str | None,
    names: tuple[str, ...],
) -> None:
    """Discover tools from an MCP server.

    SERVER is the command line (for stdio) or URL (for http) of the MCP server.
    """
    from mcplink.protocols.mcp.client import MCPClient

    ref = build_connection(server, transport, headers, config_path)

    async def _discover() -> list[Any]:
        async with MCPClient(ref) as client:
            return await client.discover_tools(list(names) or None)

    try:
        discovered = asyncio.run(_discover())
    except Exception as exc:
        console.print(f"[red]Discovery error:[/red] {exc}")
        sys.exit(1)

    if not discovered:
        console.print("[yellow]No tools discovered.[/yellow]")
        return

    print_tools_table(discovered)


@tools.command("call")
@connection_options
@click.argument("name")
@click.option("--args", "raw_args", default=None, metavar="JSON", help="Tool arguments as a JSON object.")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the result.")
def call(
    server: str,
    transport: str,
    headers: tuple[str, ...],
    config_path: str | None,
    name: str,
    raw_args: str | None,
    timeout: float | None,
) -> None:
    """Call tool NAME on an MCP server and print the normalized result."""
    from mcplink.protocols.mcp.client import MCPClient

    ref = build_connection(server, transport, headers, config_path)
    arguments = parse_json_args(raw_args)

    async def _call() -> Any:
        async with MCPClient(ref) as client:
            return await client.call_tool(name, arguments, timeout=timeout)

    try:
        result = asyncio.run(_call())
    except Exception as exc:
        console.print(f"[red]Call error:[/red] {exc}")
        sys.exit(1)

    if not print_result(result):
        sys.exit(1)
