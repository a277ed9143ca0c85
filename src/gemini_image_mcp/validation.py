from __future__ import annotations

import os
from typing import Protocol

from .errors import FileSystemError, InvalidInputError

ALLOWED_IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp", "bmp", "tiff", "tif")
MAX_SOURCE_LENGTH = 2048
MAX_PROMPT_LENGTH = 2000

_MIME_BY_EXTENSION = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "tif": "image/tiff",
}
DEFAULT_MIME_TYPE = "image/jpeg"


class Validator(Protocol):
    """Raises InvalidInputError (or FileSystemError) when ``value`` is unacceptable."""

    def validate(self, value: str) -> None: ...


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _has_allowed_extension(path: str) -> bool:
    lowered = path.lower()
    return any(lowered.endswith(f".{ext}") for ext in ALLOWED_IMAGE_EXTENSIONS)


def _allowed_list() -> str:
    return ", ".join(ALLOWED_IMAGE_EXTENSIONS)


class ImageSourceValidator:
    """Accepts an HTTPS URL or a local image path."""

    def validate(self, value: str) -> None:
        if not value.strip():
            raise InvalidInputError("Image source cannot be empty")
        if len(value) > MAX_SOURCE_LENGTH:
            raise InvalidInputError(
                f"Image source URL/path too long (max {MAX_SOURCE_LENGTH} characters)"
            )
        # Applies to URLs as well as local paths.
        if ".." in value:
            raise InvalidInputError("Path traversal not allowed")
        if is_url(value):
            if not value.startswith("https://"):
                raise InvalidInputError("Only HTTPS URLs are allowed for security")
            if "." not in value:
                raise InvalidInputError("Invalid URL format")
            return
        if not _has_allowed_extension(value):
            raise InvalidInputError(f"Unsupported file extension. Allowed: {_allowed_list()}")


class PromptValidator:
    def validate(self, value: str) -> None:
        if len(value) > MAX_PROMPT_LENGTH:
            raise InvalidInputError(f"Prompt too long (max {MAX_PROMPT_LENGTH} characters)")


class OutputPathValidator:
    """Checks where a generated image may be written.

    The target file need not exist, but its parent directory must.
    """

    def validate(self, value: str) -> None:
        if not value.strip():
            raise InvalidInputError("Output path cannot be empty")
        if len(value) > MAX_SOURCE_LENGTH:
            raise InvalidInputError(
                f"Output path too long (max {MAX_SOURCE_LENGTH} characters)"
            )
        if ".." in value:
            raise InvalidInputError("Path traversal not allowed in output path")
        if not _has_allowed_extension(value):
            raise InvalidInputError(
                f"Unsupported output file extension. Allowed: {_allowed_list()}"
            )
        parent = os.path.dirname(value)
        if parent and not os.path.isdir(parent):
            raise FileSystemError(f"Parent directory does not exist: {parent}")


def mime_type_from_extension(path: str) -> str:
    """Guess a MIME type from the file extension; unknown types map to JPEG."""
    ext = os.path.splitext(path)[1].lstrip(".").lower()
    return _MIME_BY_EXTENSION.get(ext, DEFAULT_MIME_TYPE)
