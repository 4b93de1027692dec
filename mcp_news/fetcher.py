from __future__ import annotations

import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from .exceptions import FetchTimeoutError, HttpStatusError, NetworkError, ProtocolError
from .protocol import PreparedRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")

ResponseHandler = Callable[[httpx.Response], Awaitable[T]]

_EXCERPT_BYTES = 200


async def _excerpt(response: httpx.Response) -> str:
    buf = b""
    async for chunk in response.aiter_bytes():
        buf += chunk
        if len(buf) >= _EXCERPT_BYTES:
            break
    return buf[:_EXCERPT_BYTES].decode("utf-8", errors="replace").strip()


async def _exchange(
    client: httpx.AsyncClient,
    url: str,
    request: PreparedRequest,
    timeout: httpx.Timeout,
    handler: ResponseHandler,
):
    async with client.stream(
        request.method,
        url,
        headers=request.headers,
        content=json.dumps(request.body).encode("utf-8"),
        timeout=timeout,
    ) as response:
        if response.status_code >= 400:
            raise HttpStatusError(response.status_code, await _excerpt(response))
        return await handler(response)


async def send_once(
    client: httpx.AsyncClient,
    url: str,
    request: PreparedRequest,
    *,
    timeout: float,
    handler: ResponseHandler,
    read_timeout: Optional[float] = None,
):
    """
    Perform a single POST and hand the open response to ``handler``.

    The whole exchange (connect, headers, body) must finish within ``timeout``
    seconds; ``read_timeout`` bounds inactivity between body chunks. Raises
    FetchTimeoutError, NetworkError or HttpStatusError. Never retries.
    """
    http_timeout = httpx.Timeout(timeout, read=min(timeout, read_timeout or timeout))
    try:
        return await asyncio.wait_for(_exchange(client, url, request, http_timeout, handler), timeout)
    except asyncio.TimeoutError as e:
        raise FetchTimeoutError(f"No complete response from {url} within {timeout:g}s") from e
    except httpx.TimeoutException as e:
        raise FetchTimeoutError(f"Timed out talking to {url} ({type(e).__name__})") from e
    except httpx.TransportError as e:
        raise NetworkError(f"Failed to reach {url} ({type(e).__name__}: {e})") from e
    except httpx.HTTPError as e:
        raise ProtocolError(f"Unusable response from {url} ({type(e).__name__}: {e})") from e
