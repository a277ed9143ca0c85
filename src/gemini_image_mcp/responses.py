"""Pull answers out of ``generateContent`` responses.

Text answers are read through pydantic models. Image answers are read from the
raw JSON because the API has been seen to return both ``inline_data`` and
``inlineData`` for the same field, so both spellings are probed.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import Base64DecodeError, FileSystemError, GeminiApiError

log = logging.getLogger(__name__)

_INLINE_DATA_KEYS = ("inline_data", "inlineData")


class ResponsePart(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str | None = None


class ResponseContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    parts: list[ResponsePart] | None = None


class ResponseCandidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: ResponseContent | None = None


class GenerateContentResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    candidates: list[ResponseCandidate] | None = None


def extract_text(payload: Any) -> str:
    try:
        response = GenerateContentResponse.model_validate(payload)
    except ValidationError as exc:
        raise GeminiApiError(0, f"Malformed response: {exc}") from exc

    if response.candidates is None:
        raise GeminiApiError(0, "No candidates in Gemini API response")
    if not response.candidates:
        raise GeminiApiError(0, "No candidates in response")

    content = response.candidates[0].content
    parts = content.parts if content is not None else None
    if not parts:
        raise GeminiApiError(0, "No parts in candidate content")

    for part in parts:
        if part.text and part.text.strip():
            return part.text
    raise GeminiApiError(0, "No valid text found in response")


def extract_image_data(payload: Any) -> str:
    """Return the base64 data of the first inline image in the first candidate."""
    candidates = payload.get("candidates") if isinstance(payload, dict) else None
    if isinstance(candidates, list):
        if not candidates:
            raise GeminiApiError(0, "No candidates in response")
        first = candidates[0]
        content = first.get("content") if isinstance(first, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if isinstance(parts, list):
            if not parts:
                raise GeminiApiError(0, "No parts in candidate content")
            for part in parts:
                if not isinstance(part, dict):
                    continue
                for key in _INLINE_DATA_KEYS:
                    inline = part.get(key)
                    if isinstance(inline, dict) and isinstance(inline.get("data"), str):
                        return inline["data"]
            texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
            if texts:
                log.warning("Gemini answered with text instead of an image: %s", " ".join(texts)[:300])
    raise GeminiApiError(0, "No image data found in Gemini API response")


def decode_image_data(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        log.error("Failed to decode base64 image data: %s", exc)
        raise Base64DecodeError(str(exc)) from exc


def _write_image(path: str, data: bytes) -> None:
    try:
        with open(path, "wb") as fh:
            fh.write(data)
    except OSError as exc:
        log.error("Failed to write image to '%s': %s", path, exc)
        raise FileSystemError(f"Failed to write image file: {exc}") from exc


async def save_image(path: str, data: bytes) -> str:
    """Write ``data`` to ``path``, replacing any existing file."""
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, _write_image, path, data)
    return path
