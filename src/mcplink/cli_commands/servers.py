"""``mcplink servers`` — show the servers in a connections file."""

from __future__ import annotations

import sys

import click

from mcplink.cli_commands._output import console, print_servers_table


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Connections YAML file.",
)
def servers(config_path: str) -> None:
    """List configured MCP server connections."""
    from mcplink.config import ConfigError, ConfigLoader

    try:
        config = ConfigLoader(config_path).load()
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(1)

    if not config.servers:
        console.print("[yellow]No servers configured.[/yellow]")
        return

    print_servers_table(config)
