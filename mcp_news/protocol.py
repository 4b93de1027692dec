from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .config import Envelope, NewsConfig
from .exceptions import UnsupportedContentType

ACCEPT = "application/json, text/event-stream"


@dataclass(frozen=True)
class NewsQuery:
    tags: Sequence[str] = ()

    def to_params(self) -> Dict[str, Any]:
        return {"tags": list(self.tags)}


@dataclass(frozen=True)
class PreparedRequest:
    method: str
    headers: Dict[str, str]
    body: Dict[str, Any] = field(default_factory=dict)


class ContentKind(str, Enum):
    JSON = "json"
    EVENT_STREAM = "event-stream"


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def _params(query: Union[NewsQuery, Mapping[str, Any], None]) -> Dict[str, Any]:
    if query is None:
        return NewsQuery().to_params()
    if isinstance(query, NewsQuery):
        return query.to_params()
    return dict(query)


def build_request(
    query: Union[NewsQuery, Mapping[str, Any], None],
    *,
    token: Optional[str],
    request_id: str,
    config: NewsConfig,
) -> PreparedRequest:
    """
    Build the outbound POST for the configured envelope shape.

    The ``Accept`` header always advertises both JSON and SSE: the upstream
    may answer with either whatever the request looks like.
    """
    params = _params(query)
    headers = {
        "Content-Type": "application/json",
        "Accept": ACCEPT,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"

    if config.envelope == Envelope.FLAT:
        body: Dict[str, Any] = {
            "method": config.flat_method,
            "token": token,
            "params": params,
        }
    else:
        body = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "tools/call",
            "params": {"name": config.tool_name, "arguments": params},
        }
    return PreparedRequest(method="POST", headers=headers, body=body)


def redacted_body(request: PreparedRequest) -> Dict[str, Any]:
    """Copy of the request body safe to put in a trace."""
    body = dict(request.body)
    if body.get("token"):
        body["token"] = "[REDACTED]"
    return body


def classify_content_type(value: Optional[str]) -> ContentKind:
    ct = (value or "").lower()
    if "application/json" in ct:
        return ContentKind.JSON
    if "text/event-stream" in ct:
        return ContentKind.EVENT_STREAM
    raise UnsupportedContentType(value)
