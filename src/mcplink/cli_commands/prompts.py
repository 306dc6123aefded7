"""``mcplink prompts`` — list and render prompts on MCP servers."""

from __future__ import annotations

import asyncio
import sys
from typing import Any

import click

from mcplink.cli_commands._connection import build_connection, connection_options, parse_json_args
from mcplink.cli_commands._output import console, print_prompts_table, print_result


@click.group()
def prompts() -> None:
    """List and render prompts."""


@prompts.command("list")
@connection_options
def list_prompts(
    server: str, transport: str, headers: tuple[str, ...], config_path: str | None
) -> None:
    """List the prompts an MCP server exposes."""
    from mcplink.protocols.mcp.client import MCPClient

    ref = build_connection(server, transport, headers, config_path)

    async def _list() -> list[Any]:
        async with MCPClient(ref) as client:
            return await client.discover_prompts()

    try:
        discovered = asyncio.run(_list())
    except Exception as exc:
        console.print(f"[red]Discovery error:[/red] {exc}")
        sys.exit(1)

    if not discovered:
        console.print("[yellow]No prompts discovered.[/yellow]")
        return

    print_prompts_table(discovered)


@prompts.command("get")
@connection_options
@click.argument("name")
@click.option("--args", "raw_args", default=None, metavar="JSON", help="Prompt arguments as a JSON object.")
def get(
    server: str,
    transport: str,
    headers: tuple[str, ...],
    config_path: str | None,
    name: str,
    raw_args: str | None,
) -> None:
    """Render prompt NAME and print its messages."""
    from mcplink.protocols.mcp.client import MCPClient

    ref = build_connection(server, transport, headers, config_path)
    arguments = parse_json_args(raw_args)

    async def _get() -> dict[str, Any]:
        async with MCPClient(ref) as client:
            return await client.get_prompt(name, arguments)

    try:
        prompt = asyncio.run(_get())
    except Exception as exc:
        console.print(f"[red]Prompt error:[/red] {exc}")
        sys.exit(1)

    if not print_result(prompt):
        sys.exit(1)
