from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, Union

import httpx

from .config import Envelope, NewsConfig
from .dedup import dedupe_and_sort
from .exceptions import (
    ConfigurationError,
    CredentialMissing,
    EmptyResultError,
    JsonRpcError,
    NewsFetchError,
)
from .extractors import Extractor, default_extractors, extract_records
from .fetcher import send_once
from .models import FetchResult, NewsItem
from .normalizer import normalize_records
from .protocol import NewsQuery, build_request, new_request_id, redacted_body
from .retry import RetryPolicy, call_with_retry
from .seed import load_fallback_dataset
from .stream import decode_response
from .trace import Trace

logger = logging.getLogger(__name__)

Query = Union[NewsQuery, Mapping[str, Any], None]


def _raise_for_tool_error(doc: Any) -> None:
    """MCP tool calls report failures as ``{"isError": true, "content": [...]}``."""
    for node in (doc, doc.get("result") if isinstance(doc, dict) else None):
        if isinstance(node, dict) and node.get("isError") is True:
            message = "Upstream tool reported an error"
            for block in node.get("content") or []:
                if isinstance(block, dict) and isinstance(block.get("text"), str):
                    message = block["text"]
                    break
            raise JsonRpcError(message)


class NewsFetcher:
    """
    High-level API: fetch news from the upstream workflow and always return a FetchResult.

    Pipeline: negotiate → send (with retries) → decode → extract → normalize → deduplicate → sort (newest first)

    Upstream failures never escape: they are turned into the fallback dataset
    tagged ``fallback-<reason>``. Only configuration errors are raised, and
    cancellation propagates untouched.
    """

    def __init__(
        self,
        config: NewsConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        extractors: Optional[Sequence[Extractor]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config
        self.policy = RetryPolicy.from_config(config)
        # Load eagerly so a bad fallback path fails at startup, not mid-outage
        self.fallback = load_fallback_dataset(config.fallback_path) if config.fallback_enabled else None
        self._client = client
        self._owns_client = False
        self._sleep = sleep
        self._extractors = list(extractors) if extractors is not None else default_extractors(config.run_data_node)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def __aenter__(self) -> "NewsFetcher":
        # Share one connection pool across fetches made inside the block
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
            self._owns_client = True
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher opened it. Injected clients are left to their owner."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

    async def fetch(self, query: Query = None, *, token: Optional[str] = None) -> FetchResult:
        request_id = new_request_id()
        trace = Trace(request_id, limit=self.config.trace_limit)
        trace.info("Fetch started")
        try:
            items = await self._fetch_live(query, token or self.config.token, request_id, trace)
        except asyncio.CancelledError:
            trace.warning("Fetch cancelled by caller")
            raise
        except CredentialMissing as e:
            if self.fallback is None:
                trace.fatal(f"{e}. No fallback dataset configured")
                raise
            trace.error(str(e))
            return self._fallback_result(e.reason, trace)
        except ConfigurationError as e:
            trace.fatal(str(e))
            raise
        except NewsFetchError as e:
            trace.error(f"Live fetch failed ({e.reason}): {e}")
            return self._fallback_result(e.reason, trace)
        except Exception as e:
            logger.exception("Unexpected failure in fetch pipeline [%s]", request_id)
            trace.fatal(f"Unexpected {type(e).__name__}: {e}")
            return self._fallback_result("internal-error", trace)

        trace.success(f"Sync complete: {len(items)} live item(s)")
        return FetchResult(
            generated_at=self._clock(),
            source_tag=self.config.live_tag,
            items=tuple(items),
            trace=tuple(trace.messages()),
        )

    async def _fetch_live(
        self, query: Query, token: Optional[str], request_id: str, trace: Trace
    ) -> List[NewsItem]:
        if not token:
            raise CredentialMissing("No bearer token configured")
        trace.info("Token present")

        request = build_request(query, token=token, request_id=request_id, config=self.config)
        trace.info(f"POST {self.config.url} [{self.config.envelope.value} envelope]")
        trace.info(f"Request body: {json.dumps(redacted_body(request), ensure_ascii=False)}")

        # The flat envelope carries no id, so any JSON-RPC frame is accepted
        match_id = request_id if self.config.envelope == Envelope.JSONRPC else None

        async def handle(response: httpx.Response) -> Any:
            trace.network(
                f"HTTP {response.status_code} ({response.headers.get('content-type') or 'no content type'})"
            )
            return await decode_response(response, match_id, max_bytes=self.config.stream_max_bytes)

        if self._client is not None:
            doc = await self._send(self._client, request, handle, trace)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                doc = await self._send(client, request, handle, trace)

        _raise_for_tool_error(doc)
        records = extract_records(doc, self._extractors)
        if records is None:
            raise EmptyResultError("No known record shape found in the upstream payload")
        trace.info(f"Located {len(records)} raw record(s)")
        if not records:
            raise EmptyResultError("Upstream returned zero records")

        items = normalize_records(records, now=self._clock(), language=self.config.default_language)
        if not items:
            raise EmptyResultError("No upstream record could be normalized")
        items = dedupe_and_sort(items)
        if len(items) < len(records):
            trace.info(f"Collapsed {len(records) - len(items)} duplicate or malformed record(s)")
        return items

    async def _send(self, client: httpx.AsyncClient, request, handle, trace: Trace) -> Any:
        async def attempt(timeout: float) -> Any:
            return await send_once(
                client,
                self.config.url,
                request,
                timeout=timeout,
                read_timeout=self.config.stream_idle_timeout,
                handler=handle,
            )

        return await call_with_retry(attempt, self.policy, trace, sleep=self._sleep)

    def _fallback_result(self, reason: str, trace: Trace) -> FetchResult:
        tag = f"fallback-{reason}"
        if self.fallback is None:
            trace.warning(f"Fallback disabled, returning no items [{tag}]")
            items: List[NewsItem] = []
        else:
            items = dedupe_and_sort(
                normalize_records(self.fallback, now=self._clock(), language=self.config.default_language)
            )
            trace.warning(f"Serving {len(items)} fallback item(s) [{tag}]")
        return FetchResult(
            generated_at=self._clock(),
            source_tag=tag,
            items=tuple(items),
            trace=tuple(trace.messages()),
        )


async def fetch_news(
    query: Query = None,
    *,
    config: Optional[NewsConfig] = None,
    token: Optional[str] = None,
) -> FetchResult:
    """One-shot helper: build a fetcher from ``config`` (or the environment) and fetch once."""
    async with NewsFetcher(config or NewsConfig.from_env()) as fetcher:
        return await fetcher.fetch(query, token=token)
