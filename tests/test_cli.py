from __future__ import annotations

import io
import json
import os
from pathlib import Path

import pytest

from mcp_news import cli
from mcp_news.core import NewsFetcher
from mcp_news.models import FetchResult
from mcp_news.trace import Trace


@pytest.fixture
def env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(os, "environ", {})
    path = tmp_path / ".env"
    path.write_text("MCP_URL=https://upstream.test/mcp\n", encoding="utf-8")
    return path


def _run(argv):
    out, err = io.StringIO(), io.StringIO()
    code = cli.main(argv, out=out, err=err)
    return code, out.getvalue(), err.getvalue()


def test_status_prints_report(env_file: Path) -> None:
    code, out, _ = _run(["--env-file", str(env_file), "status"])
    assert code == 0
    report = json.loads(out)
    assert report["upstream"] == "https://upstream.test/mcp"
    assert report["token_present"] is False


def test_fetch_without_token_reports_backup_mode(env_file: Path) -> None:
    code, out, err = _run(["--env-file", str(env_file), "fetch", "--trace"])
    assert code == 0
    assert out.startswith("[fallback-auth-missing] 6 item(s)")
    assert "Running in backup mode (fallback-auth-missing)" in err
    assert "trace: No bearer token configured" in err


def test_fetch_json_output(env_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    async def fake_fetch(self: NewsFetcher, query=None, *, token=None) -> FetchResult:
        seen["tags"] = list(query.tags)
        seen["token"] = token
        return self._fallback_result("timeout", Trace("x"))

    monkeypatch.setattr(NewsFetcher, "fetch", fake_fetch)
    code, out, _ = _run(["--env-file", str(env_file), "fetch", "--tag", "Hardware", "--token", "t", "--json"])
    assert code == 0
    doc = json.loads(out)
    assert doc["source_version"] == "fallback-timeout"
    assert doc["paging"]["count"] == len(doc["items"])
    assert seen == {"tags": ["Hardware"], "token": "t"}


def test_configuration_errors_exit_2(env_file: Path) -> None:
    env_file.write_text("MCP_MAX_ATTEMPTS=zero\n", encoding="utf-8")
    code, _, err = _run(["--env-file", str(env_file), "status"])
    assert code == cli.EXIT_CONFIG_ERROR
    assert "MCP_MAX_ATTEMPTS" in err
