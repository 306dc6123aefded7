"""Tests for connection configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from mcplink.config import ConfigError, ConfigLoader, ConnectionsConfig, connect_dispatcher
from mcplink.protocols.errors import ConnectionError
from mcplink.protocols.mcp.client import MCPClient
from mcplink.protocols.mcp.models import ServerConnection

_YAML = """\
timeout: 12.5
client_name: my-agent
servers:
  - name: filesystem
    command: npx
    args: ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"]
  - name: github
    transport: http
    url: https://api.example.com/mcp/
    headers:
      Authorization: "Bearer ${MCPLINK_TEST_TOKEN}"
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "mcplink.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestConfigLoader:
    def test_load_expands_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MCPLINK_TEST_TOKEN", "s3cret")
        config = ConfigLoader(_write(tmp_path, _YAML)).load()

        assert config.timeout == 12.5
        assert config.client_info == {"name": "my-agent", "version": "0.1.0"}
        assert [s.name for s in config.servers] == ["filesystem", "github"]
        assert config.get("github").headers == {"Authorization": "Bearer s3cret"}
        assert config.get("filesystem").transport == "stdio"

    def test_empty_file(self, tmp_path: Path) -> None:
        config = ConfigLoader(_write(tmp_path, "")).load()
        assert config.servers == []
        assert config.timeout == 30.0

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            ConfigLoader(tmp_path / "absent.yaml").load()

    def test_bad_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="YAML parse error"):
            ConfigLoader(_write(tmp_path, "servers: [unclosed")).load()

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            ConfigLoader(_write(tmp_path, "- a\n- b\n")).load()

    def test_invalid_server(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="url"):
            ConfigLoader(_write(tmp_path, "servers:\n  - name: x\n    transport: http\n")).load()

    def test_duplicate_names(self, tmp_path: Path) -> None:
        text = "servers:\n  - name: x\n    command: a\n  - name: x\n    command: b\n"
        with pytest.raises(ConfigError, match="Duplicate server name"):
            ConfigLoader(_write(tmp_path, text)).load()

    def test_get_unknown(self) -> None:
        with pytest.raises(KeyError):
            ConnectionsConfig().get("nope")


class TestConnectDispatcher:
    async def test_connects_every_server(self, loopback_transport: Any, scripted: Any, sample_server: Any) -> None:
        config = ConnectionsConfig(
            servers=[ServerConnection(name="sample", command="sample-server")],
            timeout=5,
            client_name="cfg-client",
        )
        with patch.object(MCPClient, "_create_transport", return_value=loopback_transport):
            dispatcher = await connect_dispatcher(config)
        try:
            assert [t.name for t in dispatcher.all_tools()] == ["echo", "add", "explode"]
            init = loopback_transport.sent[0]
            assert init["params"]["clientInfo"]["name"] == "cfg-client"
        finally:
            await dispatcher.close()

    async def test_failure_closes_opened_connections(self, loopback_transport: Any, scripted: Any) -> None:
        config = ConnectionsConfig(
            servers=[
                ServerConnection(name="good", command="good"),
                ServerConnection(name="bad", command="bad"),
            ]
        )

        def respond(data: dict[str, Any]) -> Any:
            return {"jsonrpc": "2.0", "id": data["id"], "error": {"code": -32600, "message": "nope"}} if "id" in data else None

        bad_transport = scripted(respond)
        with patch.object(MCPClient, "_create_transport", side_effect=[loopback_transport, bad_transport]):
            with pytest.raises(ConnectionError, match="nope"):
                await connect_dispatcher(config)
        assert loopback_transport.closed

    async def test_enabled_telemetry_is_configured(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "telemetry:\n  enabled: true\n  otlp_endpoint: http://collector:4317\n")
        config = ConfigLoader(path).load()
        with patch("mcplink.config.configure_telemetry") as configure:
            dispatcher = await connect_dispatcher(config)
        await dispatcher.close()
        configure.assert_called_once_with(export_to_console=False, otlp_endpoint="http://collector:4317")

    async def test_telemetry_off_by_default(self) -> None:
        with patch("mcplink.config.configure_telemetry") as configure:
            dispatcher = await connect_dispatcher(ConnectionsConfig())
        await dispatcher.close()
        configure.assert_not_called()
