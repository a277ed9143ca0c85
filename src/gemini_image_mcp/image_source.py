"""Load caller-supplied images (HTTPS URLs or local files) as base64 payloads."""
from __future__ import annotations

import asyncio
import base64
import logging
import os
from urllib.parse import urlsplit

import httpx

from .errors import FileSystemError, InvalidInputError, NetworkError, RequestTimeoutError
from .validation import ImageSourceValidator, is_url, mime_type_from_extension

log = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 20 * 1024 * 1024
_TOO_LARGE = "Image file too large (max 20MB)"


def _require_https(response: httpx.Response) -> None:
    # Redirects must not leave HTTPS.
    if response.url.scheme != "https":
        raise InvalidInputError(f"Redirect to non-HTTPS URL not allowed: {response.url}")


def _read_local_image(path: str) -> tuple[str, bytes]:
    if not os.path.exists(path):
        raise FileSystemError(f"File not found: {path}")
    if not os.path.isfile(path):
        raise FileSystemError(f"Path is not a file: {path}")
    try:
        if os.path.getsize(path) > MAX_IMAGE_BYTES:
            raise InvalidInputError(_TOO_LARGE)
        with open(path, "rb") as fh:
            data = fh.read()
    except OSError as exc:
        raise FileSystemError(f"Cannot read file: {exc}") from exc
    return mime_type_from_extension(path), data


class ImageFetcher:
    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout
        self._validator = ImageSourceValidator()

    async def fetch_and_encode(self, source: str) -> tuple[str, str]:
        """Return ``(mime_type, base64_data)`` for an image source.

        The source is validated again here so callers cannot skip the checks.
        """
        self._validator.validate(source)
        if is_url(source):
            mime_type, data = await self._fetch_url(source)
        else:
            loop = asyncio.get_running_loop()
            mime_type, data = await loop.run_in_executor(None, _read_local_image, source)

        if not data:
            raise InvalidInputError("Image file is empty")
        if len(data) > MAX_IMAGE_BYTES:
            raise InvalidInputError(_TOO_LARGE)
        return mime_type, base64.standard_b64encode(data).decode("ascii")

    async def _fetch_url(self, url: str) -> tuple[str, bytes]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                mime_type = await self._probe_mime_type(client, url)
                async with client.stream("GET", url) as response:
                    _require_https(response)
                    if not response.is_success:
                        raise NetworkError(f"GET {url} returned HTTP {response.status_code}")
                    declared = response.headers.get("content-length", "")
                    if declared.isdigit() and int(declared) > MAX_IMAGE_BYTES:
                        raise InvalidInputError(_TOO_LARGE)
                    body = bytearray()
                    async for chunk in response.aiter_bytes():
                        body.extend(chunk)
                        if len(body) > MAX_IMAGE_BYTES:
                            raise InvalidInputError(_TOO_LARGE)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"Request timeout: {url}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Failed to fetch {url}: {exc}") from exc
        return mime_type, bytes(body)

    async def _probe_mime_type(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.head(url)
        _require_https(response)
        if not response.is_success:
            raise NetworkError(f"HEAD {url} returned HTTP {response.status_code}")
        content_type = response.headers.get("content-type", "")
        if content_type:
            mime_type = content_type.split(";", 1)[0].strip().lower()
            if mime_type.startswith("image/"):
                return mime_type
            log.warning("URL content-type is not an image: %s", content_type)
        return mime_type_from_extension(urlsplit(url).path)
