"""``mcplink serve`` — serve an :class:`MCPServer` over stdio."""

from __future__ import annotations

import importlib

import click


@click.command()
@click.argument("target")
def serve(target: str) -> None:
    """Serve TARGET (``package.module:attribute``) over stdin/stdout.

    The attribute must be an MCPServer instance, or a callable returning one.
    """
    from mcplink.protocols.mcp.server import MCPServer

    module_path, sep, attr = target.partition(":")
    if not sep or not module_path or not attr:
        raise click.BadParameter("expected MODULE:ATTRIBUTE", param_hint="TARGET")

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise click.BadParameter(f"cannot import {module_path!r}: {exc}", param_hint="TARGET") from exc

    obj = getattr(module, attr, None)
    if obj is not None and not isinstance(obj, MCPServer) and callable(obj):
        obj = obj()
    if not isinstance(obj, MCPServer):
        raise click.BadParameter(f"{target!r} is not an MCPServer", param_hint="TARGET")

    obj.run_stdio()
