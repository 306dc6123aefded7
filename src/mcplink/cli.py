"""mcplink CLI entrypoint."""

from __future__ import annotations

import click

from mcplink import __version__
from mcplink.utils.log import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="mcplink")
@click.option("--verbose", "-v", count=True, help="Log more (-v info, -vv debug traffic).")
def main(verbose: int) -> None:
    """mcplink — serve and consume MCP tools, resources, and prompts."""
    configure_logging(verbose)


# Register subcommands
from mcplink.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
