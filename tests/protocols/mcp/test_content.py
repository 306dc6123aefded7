"""Tests for tools/call content normalization."""

from __future__ import annotations

import json

import pytest

from mcplink.protocols.mcp.content import Unrecognized, normalize_content


def _text(text: str) -> dict[str, str]:
    return {"type": "text", "text": text}


class TestPriority:
    def test_resource_beats_text(self) -> None:
        result = {"content": [_text("a"), {"type": "resource", "resource": {"uri": "x", "text": "b"}}]}
        assert normalize_content(result) == "b"

    def test_texts_joined_with_newlines(self) -> None:
        assert normalize_content({"content": [_text("a"), _text("c")]}) == "a\nc"

    def test_single_text_verbatim(self) -> None:
        assert normalize_content({"content": [_text("ok")]}) == "ok"

    def test_resource_blob_when_no_text(self) -> None:
        result = {"content": [{"type": "resource", "resource": {"uri": "x", "blob": "AAEC"}}]}
        assert normalize_content(result) == "AAEC"

    def test_resource_without_payload(self) -> None:
        assert normalize_content({"content": [{"type": "resource", "resource": {"uri": "x"}}]}) == ""

    def test_image_envelope(self) -> None:
        result = {"content": [_text("ignored"), {"type": "image", "data": "iVBOR", "mimeType": "image/png"}]}
        assert json.loads(normalize_content(result)) == {
            "type": "image",
            "data": "iVBOR",
            "mimeType": "image/png",
        }

    def test_resources_and_images_joined_in_order(self) -> None:
        result = {
            "content": [
                {"type": "resource", "resource": {"text": "first"}},
                _text("skip"),
                {"type": "resource", "resource": {"text": "second"}},
            ]
        }
        assert normalize_content(result) == "first\nsecond"

    def test_unknown_types_ignored(self) -> None:
        assert normalize_content({"content": [{"type": "audio", "data": "x"}, _text("t")]}) == "t"
        assert normalize_content({"content": [{"type": "audio", "data": "x"}]}) == ""


class TestUnrecognized:
    @pytest.mark.parametrize(
        "result",
        [
            {"content": []},
            {"structured": {"a": 1}},
            {"content": "not a list"},
            None,
            "bare string",
        ],
    )
    def test_fallback_keeps_original(self, result: object) -> None:
        normalized = normalize_content(result)
        assert isinstance(normalized, Unrecognized)
        assert normalized.raw is result
