from __future__ import annotations

import json
import sys
from pathlib import Path

import httpx
import pytest
import respx

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from gemini_image_mcp.errors import (
    AuthenticationError,
    GeminiApiError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
)
from gemini_image_mcp.gemini_client import DEFAULT_API_BASE_URL, GeminiClient
from gemini_image_mcp.parts import InlineImagePart, TextPart, build_request_body

MODEL = "gemini-2.5-flash"
ENDPOINT = f"{DEFAULT_API_BASE_URL}/models/{MODEL}:generateContent"
PARTS = [TextPart("Describe"), InlineImagePart("image/png", "QQ==")]


def test_blank_api_key_is_rejected() -> None:
    with pytest.raises(AuthenticationError):
        GeminiClient("   ")


def test_request_body_shape() -> None:
    assert build_request_body(PARTS) == {
        "contents": [{
            "parts": [
                {"text": "Describe"},
                {"inline_data": {"mime_type": "image/png", "data": "QQ=="}},
            ],
        }],
    }


def test_request_body_needs_parts() -> None:
    with pytest.raises(ValueError):
        build_request_body([])


class TestGenerateContent:
    @pytest.mark.asyncio
    @respx.mock
    async def test_posts_parts_with_api_key_header(self) -> None:
        route = respx.post(ENDPOINT).mock(
            return_value=httpx.Response(200, json={"candidates": []})
        )

        payload = await GeminiClient("secret-key").generate_content(PARTS, model=MODEL)

        assert payload == {"candidates": []}
        request = route.calls.last.request
        assert request.headers["x-goog-api-key"] == "secret-key"
        assert json.loads(request.content) == build_request_body(PARTS)

    @pytest.mark.asyncio
    @respx.mock
    async def test_custom_base_url(self) -> None:
        route = respx.post(f"https://proxy.example.com/v1/models/{MODEL}:generateContent").mock(
            return_value=httpx.Response(200, json={})
        )

        await GeminiClient("k", base_url="https://proxy.example.com/v1/").generate_content(PARTS, model=MODEL)

        assert route.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_401_is_authentication_error(self) -> None:
        respx.post(ENDPOINT).mock(
            return_value=httpx.Response(401, json={"error": {"code": 401, "message": "bad key"}})
        )
        with pytest.raises(AuthenticationError):
            await GeminiClient("k").generate_content(PARTS, model=MODEL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_429_is_rate_limit_error(self) -> None:
        respx.post(ENDPOINT).mock(return_value=httpx.Response(429, text="slow down"))
        with pytest.raises(RateLimitError):
            await GeminiClient("k").generate_content(PARTS, model=MODEL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_other_status_carries_code_and_body(self) -> None:
        respx.post(ENDPOINT).mock(return_value=httpx.Response(503, text="upstream unavailable"))
        with pytest.raises(GeminiApiError) as exc_info:
            await GeminiClient("k").generate_content(PARTS, model=MODEL)
        assert exc_info.value.code == 503
        assert exc_info.value.message == "upstream unavailable"

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_envelope_on_error_status(self) -> None:
        respx.post(ENDPOINT).mock(
            return_value=httpx.Response(400, json={"error": {"code": 400, "message": "API key not valid"}})
        )
        with pytest.raises(GeminiApiError) as exc_info:
            await GeminiClient("k").generate_content(PARTS, model=MODEL)
        assert (exc_info.value.code, exc_info.value.message) == (400, "API key not valid")

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_envelope_wins_over_200(self) -> None:
        respx.post(ENDPOINT).mock(
            return_value=httpx.Response(200, json={"error": {"code": 400, "message": "bad"}})
        )
        with pytest.raises(GeminiApiError) as exc_info:
            await GeminiClient("k").generate_content(PARTS, model=MODEL)
        assert exc_info.value.code == 400
        assert exc_info.value.message == "bad"
        assert str(exc_info.value) == "Gemini API error (400): bad"

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_envelope_without_fields(self) -> None:
        respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json={"error": {}}))
        with pytest.raises(GeminiApiError) as exc_info:
            await GeminiClient("k").generate_content(PARTS, model=MODEL)
        assert (exc_info.value.code, exc_info.value.message) == (0, "Unknown error")

    @pytest.mark.asyncio
    @respx.mock
    async def test_unparseable_success_body(self) -> None:
        respx.post(ENDPOINT).mock(return_value=httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(GeminiApiError) as exc_info:
            await GeminiClient("k").generate_content(PARTS, model=MODEL)
        assert "Failed to parse API response as JSON" in exc_info.value.message

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout(self) -> None:
        respx.post(ENDPOINT).mock(side_effect=httpx.ReadTimeout("read timed out"))
        with pytest.raises(RequestTimeoutError):
            await GeminiClient("k").generate_content(PARTS, model=MODEL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_failure(self) -> None:
        route = respx.post(ENDPOINT).mock(side_effect=httpx.ConnectError("connection refused"))
        with pytest.raises(NetworkError):
            await GeminiClient("k").generate_content(PARTS, model=MODEL)
        # No automatic retry.
        assert route.call_count == 1
