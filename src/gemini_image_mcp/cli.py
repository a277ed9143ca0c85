from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .config import LOG_LEVELS, load_config
from .errors import ConfigurationError
from .mcp_server import main as mcp_main

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gemini-image-mcp",
        description=(
            "Run the Gemini image MCP server over stdio. "
            "Hook this up to any MCP client."
        ),
    )
    parser.add_argument(
        "--gemini-api-key",
        metavar="KEY",
        help="Override the GEMINI_API_KEY environment variable with this API key",
    )
    parser.add_argument(
        "--config",
        type=Path,
        metavar="PATH",
        help="YAML config file (default: ~/.config/gemini-image-mcp/config.yml)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level for stderr output (default: from config, else INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(level: str) -> None:
    # stdout carries the protocol; logs go to stderr.
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or "INFO")
    try:
        config = load_config(args.config, api_key=args.gemini_api_key)
    except ConfigurationError as exc:
        parser.error(str(exc))
    if not args.log_level:
        logging.getLogger().setLevel(config.log_level)

    log.info("Starting Gemini image MCP server")
    mcp_main(config)
    log.info("Shutting down Gemini image MCP server")


if __name__ == "__main__":
    main()
