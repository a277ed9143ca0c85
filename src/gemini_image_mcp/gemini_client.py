from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from .errors import (
    AuthenticationError,
    GeminiApiError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
)
from .parts import ContentPart, build_request_body

log = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_ANALYSIS_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"


def _embedded_error(payload: Any) -> GeminiApiError | None:
    """Return the ``{"error": {code, message}}`` envelope as an exception, if any."""
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if not isinstance(error, dict):
        return None
    code = error.get("code")
    message = error.get("message")
    return GeminiApiError(
        code if isinstance(code, int) and not isinstance(code, bool) else 0,
        message if isinstance(message, str) else "Unknown error",
    )


def parse_api_response(response: httpx.Response) -> Any:
    """Classify an HTTP response from ``generateContent`` and return its JSON body."""
    status = response.status_code
    if status == 401:
        raise AuthenticationError("Invalid API key")
    if status == 429:
        raise RateLimitError("Gemini API rate limit exceeded")

    try:
        payload = response.json()
    except ValueError as exc:
        if response.is_success:
            log.error("Failed to parse response as JSON: %s", response.text[:500])
            raise GeminiApiError(status, f"Failed to parse API response as JSON: {exc}") from exc
        log.error("Gemini API returned error status %d: %s", status, response.text[:500])
        raise GeminiApiError(status, response.text) from exc

    # An error envelope wins over the status line, even on 2xx.
    api_error = _embedded_error(payload)
    if api_error is not None:
        log.error("Gemini API returned error: %d - %s", api_error.code, api_error.message)
        raise api_error
    if not response.is_success:
        log.error("Gemini API returned error status %d: %s", status, response.text[:500])
        raise GeminiApiError(status, response.text)
    return payload


class GeminiClient:
    """Sends one ``generateContent`` request per call; never retries."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 60.0,
    ) -> None:
        if not api_key.strip():
            raise AuthenticationError("API key is empty")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def generate_content(self, parts: Sequence[ContentPart], *, model: str) -> Any:
        url = f"{self.base_url}/models/{model}:generateContent"
        body = build_request_body(parts)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    json=body,
                    headers={"x-goog-api-key": self.api_key},
                )
        except httpx.TimeoutException as exc:
            log.error("Request to Gemini API timed out: %s", exc)
            raise RequestTimeoutError(f"Request timeout: {exc}") from exc
        except httpx.HTTPError as exc:
            log.error("Failed to send request to Gemini API: %s", exc)
            raise NetworkError(str(exc)) from exc
        return parse_api_response(response)
