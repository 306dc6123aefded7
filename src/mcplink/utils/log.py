"""Logging setup for the command line.

Log records go to stderr through rich: when mcplink serves over stdio,
stdout carries protocol frames and nothing else.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def configure_logging(verbosity: int = 0) -> None:
    """Install a stderr :class:`RichHandler` on the ``mcplink`` logger.

    ``verbosity`` 0 logs warnings, 1 adds info, 2 or more adds debug traffic.
    """
    level = _LEVELS[min(max(verbosity, 0), len(_LEVELS) - 1)]
    logger = logging.getLogger("mcplink")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
