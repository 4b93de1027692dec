from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


def isoformat(dt: datetime) -> str:
    """Render an aware datetime as ISO 8601 UTC with a trailing ``Z``."""
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class Source:
    name: str
    domain: str = ""


@dataclass(frozen=True)
class Score:
    freshness: float = 1.0
    relevance: float = 0.9
    popularity: float = 0.5

    def __post_init__(self) -> None:
        object.__setattr__(self, "freshness", _clamp(self.freshness))
        object.__setattr__(self, "relevance", _clamp(self.relevance))
        object.__setattr__(self, "popularity", _clamp(self.popularity))


@dataclass(frozen=True)
class NewsItem:
    """
    Stable public model representing one normalized news item.

    WARNING: Do not change fields lightly. The dashboard reads this shape.
    """
    id: str
    title: str
    summary: str
    url: str
    source: Source
    published_at: datetime
    fetched_at: datetime
    tags: Tuple[str, ...] = ()
    language: str = "it"
    score: Score = field(default_factory=Score)
    thumbnail: Optional[str] = None
    # True when upstream sent no id and one was derived from title + domain
    synthetic_id: bool = field(default=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("NewsItem.id must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "url": self.url,
            "source": {"name": self.source.name, "domain": self.source.domain},
            "published_at": isoformat(self.published_at),
            "fetched_at": isoformat(self.fetched_at),
            "tags": list(self.tags),
            "thumbnail": self.thumbnail or "",
            "language": self.language,
            "score": {
                "freshness": self.score.freshness,
                "relevance": self.score.relevance,
                "popularity": self.score.popularity,
            },
        }


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one top-level fetch. ``source_tag`` tells live data from fallback."""
    generated_at: datetime
    source_tag: str
    items: Tuple[NewsItem, ...]
    trace: Tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def is_fallback(self) -> bool:
        return self.source_tag.startswith("fallback-")

    @property
    def is_live(self) -> bool:
        return not self.is_fallback

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": isoformat(self.generated_at),
            "source_version": self.source_tag,
            "items": [it.to_dict() for it in self.items],
            "paging": {"next_cursor": None, "count": self.count},
        }


class Severity(str, Enum):
    INFO = "INFO"
    NETWORK = "NETWORK"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
    FATAL = "FATAL"


@dataclass(frozen=True)
class TraceEntry:
    message: str
    timestamp: datetime
    severity: Severity = Severity.INFO


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable-failure"
    TERMINAL_FAILURE = "terminal-failure"


@dataclass(frozen=True)
class RetryAttempt:
    number: int
    timeout: float
    outcome: AttemptOutcome
    error: Optional[str] = None
