"""Tests for CLI logging setup."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
from rich.logging import RichHandler

from mcplink.utils.log import configure_logging


@pytest.fixture
def mcplink_logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger("mcplink")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestConfigureLogging:
    @pytest.mark.parametrize(
        ("verbosity", "level"),
        [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_levels(self, mcplink_logger: logging.Logger, verbosity: int, level: int) -> None:
        configure_logging(verbosity)
        assert mcplink_logger.level == level

    def test_single_rich_handler_on_stderr(self, mcplink_logger: logging.Logger) -> None:
        configure_logging(0)
        configure_logging(1)
        rich_handlers = [h for h in mcplink_logger.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert rich_handlers[0].console.stderr
