from __future__ import annotations

from typing import Optional


class NewsFetchError(Exception):
    """Base class for failures of the upstream news pipeline."""

    reason = "internal-error"
    retryable = False


class NetworkError(NewsFetchError):
    """Raised when the upstream cannot be reached (refused, reset, DNS)."""

    reason = "network-failure"
    retryable = True


class FetchTimeoutError(NewsFetchError):
    """Raised when one attempt exceeds its deadline."""

    reason = "timeout"
    retryable = True


class HttpStatusError(NewsFetchError):
    """Raised when the upstream answers with a non-2xx status."""

    def __init__(self, status_code: int, body_excerpt: str = "") -> None:
        msg = f"Upstream returned HTTP {status_code}"
        if body_excerpt:
            msg += f": {body_excerpt}"
        super().__init__(msg)
        self.status_code = status_code
        self.body_excerpt = body_excerpt

    @property
    def reason(self) -> str:  # type: ignore[override]
        return f"http-status-{self.status_code}"

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        # 4xx means the request itself is wrong; retrying only burns attempts
        return self.status_code >= 500


class ProtocolError(NewsFetchError):
    """Raised when a response body cannot be understood."""

    reason = "protocol-error"


class UnsupportedContentType(ProtocolError):
    reason = "unsupported-content-type"

    def __init__(self, content_type: Optional[str]) -> None:
        super().__init__(f"Unsupported response content type: {content_type or '<missing>'}")
        self.content_type = content_type


class StreamEndedWithoutResponse(ProtocolError):
    reason = "stream-ended"


class JsonRpcError(ProtocolError):
    """Raised when the upstream answers with a JSON-RPC error or an MCP tool error."""

    reason = "rpc-error"

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class EmptyResultError(NewsFetchError):
    """Raised when a well-formed response carries no usable records."""

    reason = "empty-result"


class ConfigurationError(NewsFetchError):
    """Raised for caller-side configuration problems. Never absorbed silently."""

    reason = "configuration"


class CredentialMissing(ConfigurationError):
    reason = "auth-missing"
