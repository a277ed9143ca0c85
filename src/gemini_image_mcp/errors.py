from __future__ import annotations

from typing import Any


class ImageToolError(RuntimeError):
    """Base class for every failure a tool call can surface over JSON-RPC."""

    jsonrpc_code = -1
    label = "Internal error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class InvalidInputError(ImageToolError):
    jsonrpc_code = -32602
    label = "Invalid input"


class FileSystemError(ImageToolError):
    jsonrpc_code = -32004
    label = "File system error"


class NetworkError(ImageToolError):
    jsonrpc_code = -32003
    label = "Network error"


class RequestTimeoutError(ImageToolError):
    jsonrpc_code = -32006
    label = "Timeout error"


class AuthenticationError(ImageToolError):
    jsonrpc_code = -32001
    label = "Authentication error"


class ConfigurationError(ImageToolError):
    jsonrpc_code = -32001
    label = "Configuration error"


class RateLimitError(ImageToolError):
    jsonrpc_code = -32002
    label = "Rate limit exceeded"


class Base64DecodeError(ImageToolError):
    label = "Base64 encoding error"


class GeminiApiError(ImageToolError):
    jsonrpc_code = -32005
    label = "Gemini API error"

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return f"{self.label} ({self.code}): {self.message}"


# Message prefixes used on the wire; differ from str(exc) for a few classes.
_JSONRPC_PREFIXES: dict[type[ImageToolError], str] = {
    InvalidInputError: "Invalid params",
    AuthenticationError: "Authentication error",
    ConfigurationError: "Configuration error",
    RateLimitError: "Rate limit exceeded",
    FileSystemError: "File system error",
    RequestTimeoutError: "Timeout",
}


def to_jsonrpc_error(exc: BaseException) -> dict[str, Any]:
    """Map any exception raised by a tool call to a JSON-RPC error object."""
    if isinstance(exc, NetworkError):
        # Transport details stay in the server log.
        return {"code": exc.jsonrpc_code, "message": "Network error occurred"}
    if isinstance(exc, GeminiApiError):
        return {"code": exc.jsonrpc_code, "message": str(exc)}
    if isinstance(exc, ImageToolError):
        prefix = _JSONRPC_PREFIXES.get(type(exc))
        if prefix is not None:
            return {"code": exc.jsonrpc_code, "message": f"{prefix}: {exc.message}"}
        return {"code": exc.jsonrpc_code, "message": f"Internal error: {exc}"}
    return {"code": -1, "message": f"Internal error: {exc}"}
