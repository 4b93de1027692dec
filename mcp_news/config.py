from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_URL = "https://docker-n8n-xngg.onrender.com/mcp-server/http"


class Envelope(str, Enum):
    FLAT = "flat"
    JSONRPC = "jsonrpc"


@dataclass(frozen=True)
class NewsConfig:
    """Process-wide settings for the fetch pipeline. Built once, read-only afterwards."""
    url: str = DEFAULT_URL
    token: Optional[str] = None
    envelope: Envelope = Envelope.JSONRPC
    flat_method: str = "NewsAI"
    tool_name: str = "NewsAI"
    max_attempts: int = 3
    base_timeout: float = 60.0
    timeout_step: float = 15.0
    backoff: float = 1.0
    stream_max_bytes: int = 4 * 1024 * 1024
    stream_idle_timeout: float = 30.0
    trace_limit: int = 100
    fallback_enabled: bool = True
    fallback_path: Optional[Path] = None
    run_data_node: Optional[str] = None
    default_language: str = "it"
    live_tag: str = "live"

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigurationError("Upstream URL is not configured")
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if self.base_timeout <= 0:
            raise ConfigurationError("base_timeout must be positive")
        if self.timeout_step < 0 or self.backoff < 0:
            raise ConfigurationError("timeout_step and backoff must not be negative")
        if self.trace_limit < 1:
            raise ConfigurationError("trace_limit must be at least 1")
        # accept plain strings from callers
        if not isinstance(self.envelope, Envelope):
            object.__setattr__(self, "envelope", _envelope(str(self.envelope)))
        if self.fallback_path is not None and not isinstance(self.fallback_path, Path):
            object.__setattr__(self, "fallback_path", Path(self.fallback_path))

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Union[str, Path]] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "NewsConfig":
        """
        Build a config from environment variables, loading ``.env`` first.

        Values already present in the environment win over the ``.env`` file.
        """
        if environ is None:
            load_dotenv(dotenv_path=env_file)
            environ = os.environ

        def get(name: str) -> Optional[str]:
            v = environ.get(name)
            if v is None or not v.strip():
                return None
            return v.strip()

        kwargs = {}
        if get("MCP_URL"):
            kwargs["url"] = get("MCP_URL")
        if get("MCP_TOKEN"):
            kwargs["token"] = get("MCP_TOKEN")
        if get("MCP_ENVELOPE"):
            kwargs["envelope"] = _envelope(get("MCP_ENVELOPE"))
        if get("MCP_FLAT_METHOD"):
            kwargs["flat_method"] = get("MCP_FLAT_METHOD")
        if get("MCP_TOOL_NAME"):
            kwargs["tool_name"] = get("MCP_TOOL_NAME")
        if get("MCP_MAX_ATTEMPTS"):
            kwargs["max_attempts"] = _number(int, "MCP_MAX_ATTEMPTS", get("MCP_MAX_ATTEMPTS"))
        if get("MCP_BASE_TIMEOUT"):
            kwargs["base_timeout"] = _number(float, "MCP_BASE_TIMEOUT", get("MCP_BASE_TIMEOUT"))
        if get("MCP_TIMEOUT_STEP"):
            kwargs["timeout_step"] = _number(float, "MCP_TIMEOUT_STEP", get("MCP_TIMEOUT_STEP"))
        if get("MCP_BACKOFF"):
            kwargs["backoff"] = _number(float, "MCP_BACKOFF", get("MCP_BACKOFF"))
        if get("MCP_RUN_DATA_NODE"):
            kwargs["run_data_node"] = get("MCP_RUN_DATA_NODE")
        if get("NEWS_TRACE_LIMIT"):
            kwargs["trace_limit"] = _number(int, "NEWS_TRACE_LIMIT", get("NEWS_TRACE_LIMIT"))
        if get("NEWS_FALLBACK_PATH"):
            kwargs["fallback_path"] = Path(get("NEWS_FALLBACK_PATH"))
        if get("NEWS_FALLBACK_ENABLED"):
            kwargs["fallback_enabled"] = get("NEWS_FALLBACK_ENABLED").lower() not in {"0", "false", "no", "off"}
        if get("NEWS_LANGUAGE"):
            kwargs["default_language"] = get("NEWS_LANGUAGE")
        if get("NEWS_LIVE_TAG"):
            kwargs["live_tag"] = get("NEWS_LIVE_TAG")
        return cls(**kwargs)


def _envelope(value: str) -> Envelope:
    v = value.strip().lower().replace("-", "")
    if v in {"jsonrpc", "jsonrpc2", "mcp"}:
        return Envelope.JSONRPC
    if v in {"flat", "legacy"}:
        return Envelope.FLAT
    raise ConfigurationError(f"Unknown envelope shape: {value!r}")


def _number(kind, name: str, raw: str):
    try:
        return kind(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
