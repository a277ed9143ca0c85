from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationError
from .gemini_client import DEFAULT_ANALYSIS_MODEL, DEFAULT_API_BASE_URL, DEFAULT_IMAGE_MODEL

log = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "gemini-image-mcp" / "config.yml"
API_KEY_ENV = "GEMINI_API_KEY"
CONFIG_PATH_ENV = "GEMINI_IMAGE_MCP_CONFIG"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ServerConfig:
    api_key: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    analysis_model: str = DEFAULT_ANALYSIS_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    request_timeout: float = 60.0    # generateContent calls
    probe_timeout: float = 30.0      # image downloads and HEAD probes
    log_level: str = "INFO"

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())


def _positive_float(value: Any, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return float(value)
    return default


def _non_empty_str(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _validate(cfg: Mapping[str, Any]) -> dict[str, Any]:
    defaults = asdict(ServerConfig())
    merged: dict[str, Any] = {}
    merged["api_key"] = cfg["api_key"].strip() if isinstance(cfg.get("api_key"), str) else ""
    merged["api_base_url"] = _non_empty_str(cfg.get("api_base_url"), defaults["api_base_url"]).rstrip("/")
    merged["analysis_model"] = _non_empty_str(cfg.get("analysis_model"), defaults["analysis_model"])
    merged["image_model"] = _non_empty_str(cfg.get("image_model"), defaults["image_model"])
    merged["request_timeout"] = _positive_float(cfg.get("request_timeout"), defaults["request_timeout"])
    merged["probe_timeout"] = _positive_float(cfg.get("probe_timeout"), defaults["probe_timeout"])
    level = str(cfg.get("log_level", defaults["log_level"])).upper()
    merged["log_level"] = level if level in LOG_LEVELS else defaults["log_level"]
    return merged


def read_config_file(path: Path) -> dict[str, Any]:
    """Read the optional YAML config file; a missing file yields ``{}``."""
    if not path.exists():
        return {}
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        log.warning("Ignoring config file %s: expected a mapping", path)
        return {}
    return raw


def resolve_api_key(cli_key: str | None, env: Mapping[str, str], file_key: str) -> str:
    """Pick the API key: command line, then environment, then config file."""
    if cli_key is not None:
        if cli_key.strip():
            log.info("Using API key provided via command line")
            return cli_key.strip()
        log.warning("Command line API key is empty, ignoring it")
    env_key = env.get(API_KEY_ENV, "").strip()
    if env_key:
        log.info("Using API key from %s environment variable", API_KEY_ENV)
        return env_key
    if file_key:
        log.info("Using API key from config file")
        return file_key
    return ""


def load_config(
    path: Path | None = None,
    *,
    api_key: str | None = None,
    env: Mapping[str, str] | None = None,
) -> ServerConfig:
    if env is None:
        # Values already in the process environment take precedence over .env.
        load_dotenv(find_dotenv(usecwd=True), override=False)
        env = os.environ
    if path is None:
        path = Path(env[CONFIG_PATH_ENV]) if env.get(CONFIG_PATH_ENV) else CONFIG_PATH
    merged = _validate(read_config_file(path))
    merged["api_key"] = resolve_api_key(api_key, env, merged["api_key"])
    return ServerConfig(**merged)
