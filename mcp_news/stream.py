from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .exceptions import JsonRpcError, ProtocolError, StreamEndedWithoutResponse
from .protocol import ContentKind, classify_content_type

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 4 * 1024 * 1024


@dataclass
class SSEEvent:
    event: Optional[str] = None
    data: List[str] = field(default_factory=list)

    def payloads(self) -> List[Any]:
        """Parse the ``data:`` lines as JSON, one document per line, else all lines joined."""
        out: List[Any] = []
        for line in self.data:
            try:
                out.append(json.loads(line))
            except ValueError:
                continue
        if not out and len(self.data) > 1:
            try:
                out.append(json.loads("\n".join(self.data)))
            except ValueError:
                pass
        return out


class SSEDecoder:
    """
    Incremental Server-Sent-Events parser.

    Feed it text as it arrives; it hands back every event completed by a blank
    line. Partial events stay buffered until the next chunk or :meth:`flush`.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, text: str) -> List[SSEEvent]:
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        *complete, self._buffer = self._buffer.split("\n\n")
        return [ev for ev in (_parse_event(block) for block in complete) if ev.data]

    def flush(self) -> List[SSEEvent]:
        rest, self._buffer = self._buffer, ""
        ev = _parse_event(rest.rstrip("\r\n"))
        return [ev] if ev.data else []


def _parse_event(block: str) -> SSEEvent:
    ev = SSEEvent()
    for line in block.split("\n"):
        if not line or line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            ev.data.append(value)
        elif name == "event":
            ev.event = value.strip()
    return ev


def is_jsonrpc_response(obj: Any) -> bool:
    return isinstance(obj, dict) and obj.get("jsonrpc") == "2.0" and ("result" in obj or "error" in obj)


def matches_request(obj: Dict[str, Any], request_id: Optional[str]) -> bool:
    if request_id is None:
        return True
    return obj.get("id") is not None and str(obj.get("id")) == str(request_id)


def raise_for_rpc_error(obj: Dict[str, Any]) -> None:
    err = obj.get("error")
    if err is None:
        return
    if isinstance(err, dict):
        raise JsonRpcError(str(err.get("message") or "JSON-RPC error"), code=err.get("code"))
    raise JsonRpcError(str(err))


def find_response(events: List[SSEEvent], request_id: Optional[str]) -> Optional[Dict[str, Any]]:
    for ev in events:
        for obj in ev.payloads():
            if is_jsonrpc_response(obj) and matches_request(obj, request_id):
                return obj
    return None


async def _chunks(response: httpx.Response, max_bytes: int):
    total = 0
    async for chunk in response.aiter_bytes():
        total += len(chunk)
        if total > max_bytes:
            raise ProtocolError(f"Response body exceeded {max_bytes} bytes")
        yield chunk


async def read_event_stream(
    response: httpx.Response,
    request_id: Optional[str],
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> Dict[str, Any]:
    decoder = SSEDecoder()
    utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
    seen = 0
    async for chunk in _chunks(response, max_bytes):
        events = decoder.feed(utf8.decode(chunk))
        seen += len(events)
        match = find_response(events, request_id)
        if match is not None:
            logger.debug("Matched JSON-RPC response after %d event(s)", seen)
            return match
    tail = decoder.feed(utf8.decode(b"", final=True)) + decoder.flush()
    match = find_response(tail, request_id)
    if match is not None:
        return match
    raise StreamEndedWithoutResponse(
        f"Event stream ended after {seen + len(tail)} event(s) without a response for id {request_id!r}"
    )


async def read_json(response: httpx.Response, *, max_bytes: int = DEFAULT_MAX_BYTES) -> Any:
    body = b"".join([chunk async for chunk in _chunks(response, max_bytes)])
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ProtocolError(f"Response body is not valid JSON ({e})") from e


async def decode_response(
    response: httpx.Response,
    request_id: Optional[str],
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> Any:
    """
    Extract the response document from a plain JSON or SSE body.

    JSON-RPC error members are raised as :class:`JsonRpcError`.
    """
    kind = classify_content_type(response.headers.get("content-type"))
    if kind == ContentKind.JSON:
        doc = await read_json(response, max_bytes=max_bytes)
    else:
        doc = await read_event_stream(response, request_id, max_bytes=max_bytes)
    if is_jsonrpc_response(doc):
        raise_for_rpc_error(doc)
    return doc
