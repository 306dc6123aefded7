"""Connection configuration — which MCP servers to reach and how.

Example ``mcplink.yaml``::

    timeout: 20
    telemetry:
      enabled: true
      otlp_endpoint: http://localhost:4317
    servers:
      - name: filesystem
        command: npx
        args: ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"]
      - name: github
        transport: http
        url: https://api.githubcopilot.com/mcp/
        headers:
          Authorization: "Bearer ${GITHUB_TOKEN}"
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from mcplink import __version__
from mcplink.protocols.dispatcher import ToolDispatcher
from mcplink.protocols.mcp.models import ServerConnection
from mcplink.utils.telemetry import configure_telemetry


class ConfigError(Exception):
    """Raised when a connections file cannot be read, parsed, or validated."""


class TelemetrySettings(BaseModel):
    """Optional tracing configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None
    export_to_console: bool = False


class ConnectionsConfig(BaseModel):
    """Top-level connections file."""

    servers: list[ServerConnection] = Field(default_factory=lambda: list[ServerConnection]())
    timeout: float | None = Field(default=30.0, gt=0)
    client_name: str = "mcplink"
    client_version: str = __version__
    telemetry: TelemetrySettings | None = None

    @field_validator("servers")
    @classmethod
    def _unique_names(cls, servers: list[ServerConnection]) -> list[ServerConnection]:
        seen: set[str] = set()
        for server in servers:
            if server.name in seen:
                msg = f"Duplicate server name: {server.name!r}"
                raise ValueError(msg)
            seen.add(server.name)
        return servers

    def apply_telemetry(self) -> None:
        """Turn on tracing when the file asks for it."""
        if self.telemetry and self.telemetry.enabled:
            configure_telemetry(
                export_to_console=self.telemetry.export_to_console,
                otlp_endpoint=self.telemetry.otlp_endpoint,
            )

    @property
    def client_info(self) -> dict[str, str]:
        return {"name": self.client_name, "version": self.client_version}

    def get(self, name: str) -> ServerConnection:
        for server in self.servers:
            if server.name == name:
                return server
        msg = f"No server named {name!r} in configuration"
        raise KeyError(msg)


class ConfigLoader:
    """Load and validate a connections YAML file into a :class:`ConnectionsConfig`."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load(self) -> ConnectionsConfig:
        """Read YAML, interpolate env vars, and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before YAML parsing.

        Raises:
            ConfigError: On read errors, YAML parse errors, or schema validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {self._path}: {exc}") from exc

        expanded = os.path.expandvars(raw)

        try:
            data: Any = yaml.safe_load(expanded)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parse error: {exc}") from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Connections YAML must be a mapping")

        try:
            return ConnectionsConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

    async def connect_dispatcher(self) -> ToolDispatcher:
        """Load the file and return a dispatcher connected to every server in it."""
        return await connect_dispatcher(self.load())


async def connect_dispatcher(config: ConnectionsConfig) -> ToolDispatcher:
    """Connect to every configured server; on any failure, close what was opened."""
    config.apply_telemetry()
    dispatcher = ToolDispatcher(timeout=config.timeout, client_info=config.client_info)
    try:
        for server in config.servers:
            await dispatcher.connect(server)
    except BaseException:
        await dispatcher.close()
        raise
    return dispatcher
