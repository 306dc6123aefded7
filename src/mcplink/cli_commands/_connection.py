"""Turn CLI arguments into a :class:`ServerConnection`."""

from __future__ import annotations

import json
import shlex
from typing import TYPE_CHECKING, Any

import click

from mcplink.protocols.mcp.models import ServerConnection

if TYPE_CHECKING:
    from collections.abc import Callable

_CLI_NAME = "cli"


def connection_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Add the SERVER argument and its transport options to a command."""
    fn = click.option(
        "--config",
        "config_path",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Connections YAML; SERVER is then a server name from it.",
    )(fn)
    fn = click.option(
        "--header",
        "headers",
        multiple=True,
        metavar="KEY=VALUE",
        help="Extra HTTP header (repeatable).",
    )(fn)
    fn = click.option(
        "--transport",
        type=click.Choice(["stdio", "http"]),
        default="stdio",
        show_default=True,
        help="MCP server transport type.",
    )(fn)
    return click.argument("server")(fn)


def build_connection(
    server: str,
    transport: str,
    headers: tuple[str, ...] = (),
    config_path: str | None = None,
) -> ServerConnection:
    """Resolve SERVER to a connection.

    For stdio, SERVER is a shell-style command line; for http it is a URL.
    With ``--config``, SERVER names an entry in the connections file.
    """
    if config_path is not None:
        from mcplink.config import ConfigError, ConfigLoader

        try:
            config = ConfigLoader(config_path).load()
            connection = config.get(server)
        except (ConfigError, KeyError) as exc:
            raise click.BadParameter(str(exc), param_hint="SERVER") from exc
        config.apply_telemetry()
        return connection

    if transport == "http":
        return ServerConnection(name=_CLI_NAME, transport="http", url=server, headers=parse_headers(headers))

    try:
        argv = shlex.split(server)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="SERVER") from exc
    if not argv:
        raise click.BadParameter("empty command", param_hint="SERVER")
    return ServerConnection(name=_CLI_NAME, transport="stdio", command=argv[0], args=argv[1:])


def parse_headers(headers: tuple[str, ...]) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for item in headers:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            msg = f"expected KEY=VALUE, got {item!r}"
            raise click.BadParameter(msg, param_hint="--header")
        parsed[key.strip()] = value
    return parsed


def parse_json_args(raw: str | None) -> dict[str, Any]:
    """Parse the ``--args`` option into a JSON object."""
    if raw is None:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}", param_hint="--args") from exc
    if not isinstance(value, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")
    return value
