"""
mcp_news

A small, resilient client that fetches news from a workflow-automation webhook
speaking MCP/JSON-RPC over HTTP and returns only normalized news items.

Core ideas:
- Input: a query (tags) and a NewsConfig (upstream URL, bearer token, retry settings)
- Process: negotiate → send with retries → decode JSON or SSE → extract → normalize → deduplicate → sort (newest first)
- Output: FetchResult, tagged ``live`` or ``fallback-<reason>``; never an upstream exception

Example
-------
import asyncio
from mcp_news import NewsConfig, NewsFetcher, NewsQuery

fetcher = NewsFetcher(NewsConfig.from_env())
result = asyncio.run(fetcher.fetch(NewsQuery(tags=["Hardware"])))

if result.is_fallback:
    print("backup mode:", result.source_tag)
for item in result.items:
    print(item.published_at, item.source.name, item.title)
"""
from .config import Envelope, NewsConfig
from .core import NewsFetcher, fetch_news
from .exceptions import (
    ConfigurationError,
    CredentialMissing,
    EmptyResultError,
    FetchTimeoutError,
    HttpStatusError,
    JsonRpcError,
    NetworkError,
    NewsFetchError,
    ProtocolError,
    StreamEndedWithoutResponse,
    UnsupportedContentType,
)
from .models import FetchResult, NewsItem, Score, Severity, Source, TraceEntry
from .protocol import NewsQuery
from .trace import TRACE_HEADER, Trace, decode_trace_header, encode_trace_header

__all__ = [
    "ConfigurationError",
    "CredentialMissing",
    "EmptyResultError",
    "Envelope",
    "FetchResult",
    "FetchTimeoutError",
    "HttpStatusError",
    "JsonRpcError",
    "NetworkError",
    "NewsConfig",
    "NewsFetchError",
    "NewsFetcher",
    "NewsItem",
    "NewsQuery",
    "ProtocolError",
    "Score",
    "Severity",
    "Source",
    "StreamEndedWithoutResponse",
    "TRACE_HEADER",
    "Trace",
    "TraceEntry",
    "UnsupportedContentType",
    "decode_trace_header",
    "encode_trace_header",
    "fetch_news",
]
