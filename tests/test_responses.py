from __future__ import annotations

import base64
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from gemini_image_mcp.errors import Base64DecodeError, FileSystemError, GeminiApiError
from gemini_image_mcp.responses import (
    decode_image_data,
    extract_image_data,
    extract_text,
    save_image,
)


def _response(*parts: dict) -> dict:
    return {"candidates": [{"content": {"parts": list(parts)}}]}


class TestExtractText:
    def test_returns_first_non_blank_text(self) -> None:
        payload = _response({"text": "   "}, {"text": "A cat on a sofa."}, {"text": "ignored"})
        assert extract_text(payload) == "A cat on a sofa."

    def test_skips_non_text_parts(self) -> None:
        payload = _response({"inline_data": {"mime_type": "image/png", "data": "QQ=="}}, {"text": "hi"})
        assert extract_text(payload) == "hi"

    def test_missing_candidates(self) -> None:
        with pytest.raises(GeminiApiError) as exc_info:
            extract_text({"usageMetadata": {}})
        assert exc_info.value.message.startswith("No candidates")

    def test_empty_candidates(self) -> None:
        with pytest.raises(GeminiApiError) as exc_info:
            extract_text({"candidates": []})
        assert exc_info.value.message == "No candidates in response"

    def test_candidate_without_parts(self) -> None:
        for payload in (_response(), {"candidates": [{"finishReason": "SAFETY"}]}):
            with pytest.raises(GeminiApiError) as exc_info:
                extract_text(payload)
            assert exc_info.value.message == "No parts in candidate content"

    def test_no_text_found(self) -> None:
        with pytest.raises(GeminiApiError) as exc_info:
            extract_text(_response({"text": ""}, {"text": "\n"}))
        assert exc_info.value.message == "No valid text found in response"

    def test_malformed_payload(self) -> None:
        with pytest.raises(GeminiApiError) as exc_info:
            extract_text({"candidates": "nope"})
        assert exc_info.value.message.startswith("Malformed response")


class TestExtractImageData:
    def test_snake_case(self) -> None:
        payload = _response({"inline_data": {"mime_type": "image/png", "data": "QQ=="}})
        assert extract_image_data(payload) == "QQ=="

    def test_camel_case_matches_snake_case(self) -> None:
        camel = {"candidates": [{"content": {"parts": [{"inlineData": {"data": "QQ=="}}]}}]}
        snake = {"candidates": [{"content": {"parts": [{"inline_data": {"data": "QQ=="}}]}}]}
        assert extract_image_data(camel) == extract_image_data(snake) == "QQ=="

    def test_first_image_after_text(self) -> None:
        payload = _response(
            {"text": "Here is your picture"},
            {"inlineData": {"mimeType": "image/png", "data": "Zmlyc3Q="}},
            {"inline_data": {"data": "c2Vjb25k"}},
        )
        assert extract_image_data(payload) == "Zmlyc3Q="

    def test_empty_candidates(self) -> None:
        with pytest.raises(GeminiApiError) as exc_info:
            extract_image_data({"candidates": []})
        assert exc_info.value.message == "No candidates in response"

    def test_empty_parts(self) -> None:
        with pytest.raises(GeminiApiError) as exc_info:
            extract_image_data(_response())
        assert exc_info.value.message == "No parts in candidate content"

    def test_no_image_data(self) -> None:
        for payload in (
            {},
            {"candidates": [{}]},
            _response({"text": "I can't draw that."}),
            _response({"inline_data": {"mime_type": "image/png"}}),
        ):
            with pytest.raises(GeminiApiError) as exc_info:
                extract_image_data(payload)
            assert exc_info.value.message == "No image data found in Gemini API response"


class TestDecodeAndSave:
    def test_round_trip_preserves_every_byte(self) -> None:
        raw = bytes([0x00, 0xFF, 0x10, 0x80, 0x00, 0xFE, 0xFF]) + bytes(range(256))
        encoded = base64.standard_b64encode(raw).decode("ascii")
        assert decode_image_data(encoded) == raw

    def test_corrupt_data_is_an_error(self) -> None:
        for data in ("not base64!!", "QQ=", "QQ==QQ"):
            with pytest.raises(Base64DecodeError):
                decode_image_data(data)

    @pytest.mark.asyncio
    async def test_save_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "out.png"
        target.write_bytes(b"old contents that are longer")

        result = await save_image(str(target), b"\x00new\xff")

        assert result == str(target)
        assert target.read_bytes() == b"\x00new\xff"

    @pytest.mark.asyncio
    async def test_save_failure_is_filesystem_error(self, tmp_path: Path) -> None:
        with pytest.raises(FileSystemError) as exc_info:
            await save_image(str(tmp_path / "missing" / "out.png"), b"data")
        assert "Failed to write image file" in exc_info.value.message
