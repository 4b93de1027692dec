import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_news_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer .env values out of the tests."""

    for var in (
        "MCP_URL",
        "MCP_TOKEN",
        "MCP_ENVELOPE",
        "MCP_FLAT_METHOD",
        "MCP_TOOL_NAME",
        "MCP_MAX_ATTEMPTS",
        "MCP_BASE_TIMEOUT",
        "MCP_TIMEOUT_STEP",
        "MCP_BACKOFF",
        "MCP_RUN_DATA_NODE",
        "NEWS_TRACE_LIMIT",
        "NEWS_FALLBACK_PATH",
        "NEWS_FALLBACK_ENABLED",
        "NEWS_LANGUAGE",
        "NEWS_LIVE_TAG",
    ):
        monkeypatch.delenv(var, raising=False)
