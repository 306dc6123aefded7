"""Tests for OpenTelemetry tracing helpers."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import patch

import pytest
from opentelemetry import trace

from mcplink.protocols.mcp.server import MCPServer
from mcplink.utils.telemetry import (
    ATTR_ERROR_CODE,
    ATTR_METHOD,
    ATTR_SERVER_NAME,
    _INSTRUMENTATION_NAME,
    configure_telemetry,
    get_tracer,
)


class TestGetTracer:
    def test_returns_tracer(self) -> None:
        tracer = get_tracer("test.module")
        assert isinstance(tracer, trace.Tracer)

    def test_default_name(self) -> None:
        tracer = get_tracer()
        assert isinstance(tracer, trace.Tracer)

    def test_noop_span(self) -> None:
        """Without SDK configured, spans should be no-ops."""
        tracer = get_tracer("test.noop")
        with tracer.start_as_current_span("test") as span:
            span.set_attribute("key", "value")


class TestConfigureTelemetry:
    def test_raises_without_sdk(self) -> None:
        """configure_telemetry requires opentelemetry-sdk."""
        with patch.dict("sys.modules", {"opentelemetry.sdk.resources": None}):
            with pytest.raises(ImportError, match="opentelemetry-sdk"):
                configure_telemetry()

    def test_otlp_raises_without_exporter(self) -> None:
        """OTLP export requires opentelemetry-exporter-otlp."""
        try:
            import opentelemetry.sdk.trace  # noqa: F401
        except ImportError:
            pytest.skip("opentelemetry-sdk not installed")

        with patch.dict(
            "sys.modules",
            {"opentelemetry.exporter.otlp.proto.grpc.trace_exporter": None},
        ):
            with pytest.raises(ImportError, match="opentelemetry-exporter-otlp"):
                configure_telemetry(
                    export_to_console=False,
                    otlp_endpoint="http://localhost:4317",
                )


class TestDispatchSpans:
    async def test_server_dispatch_records_method_and_error(self) -> None:
        try:
            from opentelemetry.sdk.trace import TracerProvider
            from opentelemetry.sdk.trace.export import SimpleSpanProcessor
            from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
        except ImportError:
            pytest.skip("opentelemetry-sdk not installed")

        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        tracer = provider.get_tracer("test")

        server = MCPServer("traced")
        with patch("mcplink.protocols.mcp.server._tracer", tracer):
            await server.handle_request(json.dumps({"jsonrpc": "2.0", "id": 1, "method": "nope/nope"}))

        (span,) = exporter.get_finished_spans()
        attributes: dict[str, Any] = dict(span.attributes or {})
        assert span.name == "mcp.server.dispatch"
        assert attributes[ATTR_METHOD] == "nope/nope"
        assert attributes[ATTR_ERROR_CODE] == -32601


class TestAttributeConstants:
    def test_constants_are_strings(self) -> None:
        assert isinstance(ATTR_SERVER_NAME, str)
        assert ATTR_SERVER_NAME.startswith("mcp.")

    def test_instrumentation_name(self) -> None:
        assert _INSTRUMENTATION_NAME == "mcplink"
