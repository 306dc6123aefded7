"""``mcplink resources`` — list and read resources on MCP servers."""

from __future__ import annotations

import asyncio
import sys
from typing import Any

import click

from mcplink.cli_commands._connection import build_connection, connection_options
from mcplink.cli_commands._output import console, print_resources_table, print_result


@click.group()
def resources() -> None:
    """List and read resources."""


@resources.command("list")
@connection_options
def list_resources(
    server: str, transport: str, headers: tuple[str, ...], config_path: str | None
) -> None:
    """List the resources an MCP server exposes."""
    from mcplink.protocols.mcp.client import MCPClient

    ref = build_connection(server, transport, headers, config_path)

    async def _list() -> list[Any]:
        async with MCPClient(ref) as client:
            return await client.discover_resources()

    try:
        discovered = asyncio.run(_list())
    except Exception as exc:
        console.print(f"[red]Discovery error:[/red] {exc}")
        sys.exit(1)

    if not discovered:
        console.print("[yellow]No resources discovered.[/yellow]")
        return

    print_resources_table(discovered)


@resources.command("read")
@connection_options
@click.argument("uri")
def read(
    server: str, transport: str, headers: tuple[str, ...], config_path: str | None, uri: str
) -> None:
    """Read resource URI and print its contents."""
    from mcplink.protocols.mcp.client import MCPClient

    ref = build_connection(server, transport, headers, config_path)

    async def _read() -> Any:
        async with MCPClient(ref) as client:
            return await client.read_resource(uri)

    try:
        contents = asyncio.run(_read())
    except Exception as exc:
        console.print(f"[red]Read error:[/red] {exc}")
        sys.exit(1)

    if isinstance(contents, dict):
        print_result(contents)
        sys.exit(1)

    for item in contents:
        text = item.get("text")
        if text is not None:
            print_result(text)
        else:
            print_result(item)
