from __future__ import annotations

import pytest

from mcp_news.config import Envelope, NewsConfig
from mcp_news.exceptions import UnsupportedContentType
from mcp_news.protocol import (
    ContentKind,
    NewsQuery,
    build_request,
    classify_content_type,
    new_request_id,
    redacted_body,
)


def test_jsonrpc_envelope_shape() -> None:
    config = NewsConfig(envelope=Envelope.JSONRPC, tool_name="NewsAI")
    req = build_request(NewsQuery(tags=["AI"]), token="secret", request_id="r1", config=config)

    assert req.method == "POST"
    assert req.body == {
        "jsonrpc": "2.0",
        "id": "r1",
        "method": "tools/call",
        "params": {"name": "NewsAI", "arguments": {"tags": ["AI"]}},
    }
    assert req.headers["Authorization"] == "Bearer secret"
    assert req.headers["Content-Type"] == "application/json"


def test_flat_envelope_shape() -> None:
    config = NewsConfig(envelope=Envelope.FLAT)
    req = build_request({"tags": []}, token="secret", request_id="r1", config=config)
    assert req.body == {"method": "NewsAI", "token": "secret", "params": {"tags": []}}


@pytest.mark.parametrize("envelope", [Envelope.FLAT, Envelope.JSONRPC])
def test_accept_header_always_lists_json_and_sse(envelope: Envelope) -> None:
    req = build_request(None, token="t", request_id="r", config=NewsConfig(envelope=envelope))
    accept = req.headers["Accept"]
    assert "application/json" in accept
    assert "text/event-stream" in accept


def test_no_authorization_header_without_token() -> None:
    req = build_request(None, token=None, request_id="r", config=NewsConfig())
    assert "Authorization" not in req.headers


def test_redacted_body_hides_token() -> None:
    req = build_request(None, token="secret", request_id="r", config=NewsConfig(envelope=Envelope.FLAT))
    assert redacted_body(req)["token"] == "[REDACTED]"
    assert req.body["token"] == "secret"


def test_classify_content_type() -> None:
    assert classify_content_type("application/json; charset=utf-8") == ContentKind.JSON
    assert classify_content_type("Text/Event-Stream") == ContentKind.EVENT_STREAM
    with pytest.raises(UnsupportedContentType):
        classify_content_type("text/plain")
    with pytest.raises(UnsupportedContentType):
        classify_content_type(None)


def test_request_ids_are_unique() -> None:
    assert len({new_request_id() for _ in range(50)}) == 50
