"""
MCP (Model Context Protocol) server exposing Gemini image tools.

Tools: analyze_image, generate_image, edit_image, inpaint_image,
style_transfer, compose_images and refine_image. Image-producing tools write
the result to the caller's ``output_path`` and report that path back.

Protocol: JSON-RPC 2.0 over stdio (one JSON object per line). Requests are
served concurrently; each response is written as a single line when ready.

Usage
-----
Run directly:
    python -m gemini_image_mcp.mcp_server

Or via the CLI:
    gemini-image-mcp --gemini-api-key <KEY>

Client mcp_servers.json entry
-----------------------------
{
  "mcpServers": {
    "gemini-image": {
      "command": "gemini-image-mcp",
      "args": [],
      "env": {"GEMINI_API_KEY": "<KEY>"}
    }
  }
}
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from . import __version__
from .config import ServerConfig, load_config
from .errors import ConfigurationError, ImageToolError, InvalidInputError, to_jsonrpc_error
from .gemini_client import GeminiClient
from .image_source import ImageFetcher
from .image_tools import ImageToolService
from .models import (
    AnalyzeImageInput,
    ComposeImagesInput,
    EditImageInput,
    GenerateImageInput,
    InpaintImageInput,
    RefineImageInput,
    StyleTransferInput,
)

log = logging.getLogger(__name__)

SERVER_NAME = "gemini-image-mcp"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"
_SUPPORTED_PROTOCOL_VERSIONS = {"2024-11-05", "2025-03-26"}

# Largest request line accepted from stdin.
_READ_LIMIT = 16 * 1024 * 1024


# ---------------------------------------------------------------------------
# Tool registry, one entry per exposed tool
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[BaseModel]
    # None for tools that answer with text; otherwise prefixes the saved path.
    success_message: str | None = None

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_model.model_json_schema(),
        }


TOOLS: list[ToolSpec] = [
    ToolSpec(
        "analyze_image",
        "Analyze an image using Google's Gemini API. Supports both HTTPS URLs and local file paths.",
        AnalyzeImageInput,
    ),
    ToolSpec(
        "generate_image",
        "Generate an image using Google's Gemini API with optional system prompt and required user prompt.",
        GenerateImageInput,
        "Image successfully generated and saved to:",
    ),
    ToolSpec(
        "edit_image",
        "Edit an existing image using Google's Gemini API by providing both an input image "
        "and a text prompt describing the desired changes.",
        EditImageInput,
        "Image successfully edited and saved to:",
    ),
    ToolSpec(
        "inpaint_image",
        "Inpaint/modify specific regions of an image using semantic masking. "
        "Supports focusing on specific elements or regions.",
        InpaintImageInput,
        "Image successfully inpainted and saved to:",
    ),
    ToolSpec(
        "style_transfer",
        "Transfer the artistic style from one image to another using Google's Gemini API.",
        StyleTransferInput,
        "Style transfer successfully applied and saved to:",
    ),
    ToolSpec(
        "compose_images",
        "Compose multiple images into a single new image using Google's Gemini API.",
        ComposeImagesInput,
        "Images successfully composed and saved to:",
    ),
    ToolSpec(
        "refine_image",
        "Iteratively refine an image with conversation history for progressive improvement "
        "using Google's Gemini API.",
        RefineImageInput,
        "Image successfully refined and saved to:",
    ),
]

_TOOLS_BY_NAME: dict[str, ToolSpec] = {tool.name: tool for tool in TOOLS}


# ---------------------------------------------------------------------------
# JSON-RPC 2.0 helpers
# ---------------------------------------------------------------------------

def _ok(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _err(request_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def _exc_err(request_id: Any, exc: BaseException) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": to_jsonrpc_error(exc)}


def _text(s: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": s}]


def _write(obj: dict) -> None:
    sys.stdout.write(json.dumps(obj) + "\n")
    sys.stdout.flush()


# ---------------------------------------------------------------------------
# Request handling
# ---------------------------------------------------------------------------

class ImageToolServer:
    """Routes JSON-RPC requests to an :class:`ImageToolService`.

    ``service`` is ``None`` when no API key is configured; the server still
    answers ``initialize`` and ``tools/list`` but every tool call reports a
    configuration error.
    """

    def __init__(self, service: ImageToolService | None) -> None:
        self.service = service

    @classmethod
    def from_config(cls, config: ServerConfig) -> ImageToolServer:
        if not config.has_api_key:
            log.warning("GEMINI_API_KEY not set - image tools will report configuration errors")
            return cls(None)
        client = GeminiClient(config.api_key, config.api_base_url, timeout=config.request_timeout)
        service = ImageToolService(
            client,
            ImageFetcher(timeout=config.probe_timeout),
            analysis_model=config.analysis_model,
            image_model=config.image_model,
        )
        return cls(service)

    async def handle_line(self, line: str) -> dict | None:
        try:
            req = json.loads(line)
        except json.JSONDecodeError as exc:
            log.error("Failed to parse JSON-RPC request: %s", exc)
            return _err(None, -32700, f"Parse error: {exc}")
        if not isinstance(req, dict) or not isinstance(req.get("method"), str):
            return _err(None, -32700, "Parse error: expected a JSON-RPC request object")
        try:
            return await self.handle_request(req)
        except Exception as exc:
            log.exception("Unhandled error while serving %s", req.get("method"))
            if req.get("id") is None:
                return None
            return _err(req.get("id"), -1, f"Internal error: {exc}")

    async def handle_request(self, req: dict[str, Any]) -> dict | None:
        req_id = req.get("id")
        method = req.get("method", "")
        params = req.get("params")

        if method == "initialize":
            client_ver = params.get("protocolVersion") if isinstance(params, dict) else None
            if not isinstance(client_ver, str) or client_ver not in _SUPPORTED_PROTOCOL_VERSIONS:
                client_ver = DEFAULT_PROTOCOL_VERSION
            return _ok(req_id, {
                "protocolVersion": client_ver,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            })

        if method.startswith("notifications/"):
            # Notifications get no response
            return None

        if method == "ping":
            return _ok(req_id, {})

        if method == "tools/list":
            return _ok(req_id, {"tools": [tool.schema() for tool in TOOLS]})

        if method == "tools/call":
            if req_id is None:
                # Notifications get no response, so the tool is not run.
                log.warning("Ignoring tools/call sent without an id")
                return None
            return await self._call_tool(req_id, params)

        if req_id is None:
            return None
        return _err(req_id, -32601, "Method not found")

    async def _call_tool(self, req_id: Any, params: Any) -> dict:
        if not isinstance(params, dict):
            return _err(req_id, -1, "Invalid params")
        name = params.get("name")
        if not isinstance(name, str) or not name:
            return _err(req_id, -1, "Missing tool name")
        tool = _TOOLS_BY_NAME.get(name)
        if tool is None:
            return _err(req_id, -1, f"Unknown tool: {name}")

        if self.service is None:
            return _exc_err(req_id, ConfigurationError("GEMINI_API_KEY environment variable not set"))

        arguments = params.get("arguments")
        if arguments is None:
            return _exc_err(req_id, InvalidInputError("Missing arguments"))
        try:
            request = tool.input_model.model_validate(arguments)
        except ValidationError as exc:
            log.error("Invalid arguments for %s: %s", name, exc)
            return _exc_err(req_id, InvalidInputError(f"Invalid arguments: {exc}"))

        try:
            outcome: str = await getattr(self.service, tool.name)(request)
        except ImageToolError as exc:
            log.error("Tool %s failed: %s", name, exc)
            return _exc_err(req_id, exc)
        except Exception as exc:
            log.exception("Unexpected failure in tool %s", name)
            return _exc_err(req_id, exc)

        if tool.success_message is None:
            log.info("Successfully ran %s", name)
            return _ok(req_id, {"content": _text(outcome)})
        log.info("%s %s", tool.success_message, outcome)
        return _ok(req_id, {
            "content": _text(f"{tool.success_message} {outcome}"),
            "file_path": outcome,
        })


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

async def _serve_line(server: ImageToolServer, line: str) -> None:
    response = await server.handle_line(line)
    if response is not None:
        _write(response)


async def _run(server: ImageToolServer) -> None:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=_READ_LIMIT)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)

    pending: set[asyncio.Task] = set()
    while True:
        try:
            line_bytes = await reader.readline()
        except (ValueError, OSError) as exc:
            log.error("Failed to read from stdin: %s", exc)
            break
        if not line_bytes:
            break
        line = line_bytes.decode(errors="replace").strip()
        if line:
            task = asyncio.create_task(_serve_line(server, line))
            pending.add(task)
            task.add_done_callback(pending.discard)

    if pending:
        await asyncio.gather(*pending)


def main(config: ServerConfig | None = None) -> None:
    if config is None:
        try:
            config = load_config()
        except ConfigurationError as exc:
            log.error("%s", exc)
            raise SystemExit(f"{SERVER_NAME}: {exc}") from exc
    server = ImageToolServer.from_config(config)
    asyncio.run(_run(server))


if __name__ == "__main__":
    main()
