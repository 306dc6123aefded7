"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from mcplink.cli_commands.prompts import prompts
    from mcplink.cli_commands.resources import resources
    from mcplink.cli_commands.serve import serve
    from mcplink.cli_commands.servers import servers
    from mcplink.cli_commands.tools import tools

    cli.add_command(tools)
    cli.add_command(resources)
    cli.add_command(prompts)
    cli.add_command(servers)
    cli.add_command(serve)
