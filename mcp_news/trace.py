from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Optional, Sequence

from .models import Severity, TraceEntry

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Proxy-Trace"
DEFAULT_TRACE_LIMIT = 100

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.NETWORK: logging.DEBUG,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.FATAL: logging.CRITICAL,
}

_BEARER = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)


class Trace:
    """
    Bounded, append-only log of the steps taken during one fetch invocation.

    Entries beyond ``limit`` push out the oldest ones. Every entry is mirrored to
    the module logger, prefixed with the invocation's request id.
    """

    def __init__(self, request_id: str, *, limit: int = DEFAULT_TRACE_LIMIT) -> None:
        if limit <= 0:
            raise ValueError("trace limit must be positive")
        self.request_id = request_id
        self._entries: Deque[TraceEntry] = deque(maxlen=limit)

    def add(self, message: str, severity: Severity = Severity.INFO) -> TraceEntry:
        message = _BEARER.sub(r"\1[REDACTED]", message)
        entry = TraceEntry(message=message, timestamp=datetime.now(timezone.utc), severity=severity)
        self._entries.append(entry)
        logger.log(_LOG_LEVELS[severity], "[%s] %s", self.request_id, message)
        return entry

    def info(self, message: str) -> TraceEntry:
        return self.add(message, Severity.INFO)

    def network(self, message: str) -> TraceEntry:
        return self.add(message, Severity.NETWORK)

    def success(self, message: str) -> TraceEntry:
        return self.add(message, Severity.SUCCESS)

    def warning(self, message: str) -> TraceEntry:
        return self.add(message, Severity.WARNING)

    def error(self, message: str) -> TraceEntry:
        return self.add(message, Severity.ERROR)

    def fatal(self, message: str) -> TraceEntry:
        return self.add(message, Severity.FATAL)

    @property
    def entries(self) -> List[TraceEntry]:
        return list(self._entries)

    def messages(self) -> List[str]:
        return [e.message for e in self._entries]

    def to_header(self) -> str:
        return encode_trace_header(self.messages())

    def __len__(self) -> int:
        return len(self._entries)


def encode_trace_header(messages: Sequence[str]) -> str:
    """Encode trace messages as base64 JSON for the ``X-Proxy-Trace`` header."""
    raw = json.dumps(list(messages), ensure_ascii=False).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_trace_header(value: Optional[str]) -> List[str]:
    """Inverse of :meth:`Trace.to_header`. Undecodable headers yield an empty list."""
    if not value:
        return []
    try:
        decoded = json.loads(base64.b64decode(value, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        logger.warning("Could not decode %s header", TRACE_HEADER)
        return []
    if not isinstance(decoded, list):
        return []
    return [str(m) for m in decoded]
