from __future__ import annotations

from typing import Dict, Iterable, List

from .models import NewsItem
from .normalizer import synthetic_key


def identity_key(item: NewsItem) -> str:
    """
    Explicit upstream id when there is one, else normalized title + source domain.
    """
    if item.id and not item.synthetic_id:
        return f"id::{item.id}"
    return f"title::{synthetic_key(item.title, item.source.domain)}"


def deduplicate(items: Iterable[NewsItem]) -> List[NewsItem]:
    """
    Collapse items sharing an identity key, keeping the most recently published.
    Ties keep the first occurrence. First-seen order of keys is preserved.
    """
    best: Dict[str, NewsItem] = {}
    for it in items:
        key = identity_key(it)
        current = best.get(key)
        if current is None or it.published_at > current.published_at:
            best[key] = it
    return list(best.values())


def dedupe_and_sort(items: Iterable[NewsItem]) -> List[NewsItem]:
    """Deduplicate, then order newest first (stable for equal timestamps)."""
    out = deduplicate(items)
    out.sort(key=lambda x: x.published_at, reverse=True)
    return out
