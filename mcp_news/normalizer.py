from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import NewsItem, Score, Source
from .parser import parse_record

logger = logging.getLogger(__name__)

SYNTHETIC_ID_PREFIX = "auto-"
DEFAULT_TITLE = "Untitled"
DEFAULT_SUMMARY = "No summary available."
DEFAULT_URL = "#"
DEFAULT_SOURCE = "Unknown source"
DEFAULT_TAG = "General"
DEFAULT_SCORE = Score(freshness=1.0, relevance=0.9, popularity=0.5)


def synthetic_key(title: str, domain: str = "") -> str:
    """Normalized title + source domain; the identity of an item without an upstream id."""
    return f"{' '.join(title.split()).lower()}::{domain.strip().lower()}"


def synthesize_id(title: str, domain: str = "") -> str:
    digest = hashlib.sha1(synthetic_key(title, domain).encode("utf-8")).hexdigest()
    return f"{SYNTHETIC_ID_PREFIX}{digest[:16]}"


def to_news_item(entry: Dict[str, Any], *, now: datetime, language: str = "it") -> NewsItem:
    """
    Convert a parsed entry dict (see ``parser.parse_record``) into a NewsItem.

    Every missing field gets a fixed default, so the same entry and ``now``
    always produce the same item. Missing ids are derived from the title and
    source domain, the same pair deduplication keys such items on.
    """
    title = entry.get("title") or DEFAULT_TITLE
    domain = entry.get("source_domain") or ""
    scores = entry.get("scores") or {}
    item_id = entry.get("id")
    return NewsItem(
        id=item_id or synthesize_id(title, domain),
        title=title,
        summary=entry.get("summary") or DEFAULT_SUMMARY,
        url=entry.get("url") or DEFAULT_URL,
        source=Source(
            name=entry.get("source_name") or DEFAULT_SOURCE,
            domain=domain,
        ),
        published_at=entry.get("published_at") or now,
        fetched_at=now,
        tags=tuple(entry.get("tags") or (DEFAULT_TAG,)),
        language=entry.get("language") or language,
        score=Score(
            freshness=scores.get("freshness", DEFAULT_SCORE.freshness),
            relevance=scores.get("relevance", DEFAULT_SCORE.relevance),
            popularity=scores.get("popularity", DEFAULT_SCORE.popularity),
        ),
        thumbnail=entry.get("thumbnail"),
        synthetic_id=not item_id,
    )


def normalize_records(
    records: Iterable[Mapping[str, Any]],
    *,
    now: Optional[datetime] = None,
    language: str = "it",
) -> List[NewsItem]:
    now = now or datetime.now(timezone.utc)
    items = []
    for raw in records:
        try:
            items.append(to_news_item(parse_record(raw), now=now, language=language))
        except (TypeError, ValueError) as e:
            # Skip malformed rows
            logger.debug("Skipping malformed record: %s", e)
            continue
    return items
