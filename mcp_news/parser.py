from __future__ import annotations

import calendar
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import urlparse

from feedparser.datetimes import _parse_date

ID_KEYS = ("id", "guid", "_id")
TITLE_KEYS = ("title", "headline", "name")
SUMMARY_KEYS = ("summary", "description", "content", "excerpt")
URL_KEYS = ("url", "link", "href")
DATE_KEYS = ("published_at", "date", "pubDate", "timestamp")
SCORE_KEYS = ("freshness", "relevance", "popularity")


def _first_text(entry: Mapping[str, Any], keys: Sequence[str]) -> Optional[str]:
    for k in keys:
        v = entry.get(k)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Convert an upstream timestamp to a timezone-aware UTC datetime.

    Accepts datetimes, epoch seconds or milliseconds, ISO 8601 strings and
    anything feedparser understands (RFC 822 ``pubDate`` included).
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts > 1e11:  # milliseconds
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, time.struct_time):
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None
    s = value.strip()
    if s.replace(".", "", 1).isdigit():
        return to_datetime(float(s))
    try:
        return to_datetime(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        pass
    parsed = _parse_date(s)
    if isinstance(parsed, time.struct_time):
        return to_datetime(parsed)
    return None


def _get_source(entry: Mapping[str, Any]) -> Dict[str, Optional[str]]:
    nested = entry.get("source")
    nested_name = None
    nested_domain = None
    if isinstance(nested, Mapping):
        nested_name = _first_text(nested, ("name", "title"))
        nested_domain = _first_text(nested, ("domain",))
    elif isinstance(nested, str) and nested.strip():
        nested_name = nested.strip()

    name = _first_text(entry, ("source_name", "author")) or nested_name
    domain = _first_text(entry, ("source_domain", "domain")) or nested_domain
    return {"name": name, "domain": domain}


def _host(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    host = urlparse(url).netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    return host or None


def _get_tags(entry: Mapping[str, Any]) -> List[str]:
    raw = entry.get("tags")
    tags: List[str] = []
    if isinstance(raw, str):
        raw = [raw]
    if isinstance(raw, list):
        for t in raw:
            if isinstance(t, Mapping):  # feed-style {"term": ...}
                t = t.get("term") or t.get("name")
            if isinstance(t, str) and t.strip() and t.strip() not in tags:
                tags.append(t.strip())
    if not tags:
        category = _first_text(entry, ("category",))
        if category:
            tags.append(category)
    return tags


def _get_scores(entry: Mapping[str, Any]) -> Dict[str, float]:
    nested = entry.get("score")
    scores: Dict[str, float] = {}
    for k in SCORE_KEYS:
        for src in (nested if isinstance(nested, Mapping) else {}, entry):
            v = src.get(k)
            if isinstance(v, str):
                try:
                    v = float(v)
                except ValueError:
                    continue
            if isinstance(v, (int, float)) and not isinstance(v, bool):
                scores[k] = float(v)
                break
    return scores


def parse_record(entry: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map a raw upstream record to a dict with common fields.

    Field names are not fixed by the upstream, so each field is taken from the
    first alias present. Missing fields come back as None; defaults are applied
    by the normalizer.
    Fields: id, title, summary, url, source_name, source_domain, published_at,
    tags, language, thumbnail, scores
    """
    url = _first_text(entry, URL_KEYS)
    source = _get_source(entry)

    published_at = None
    for k in DATE_KEYS:
        published_at = to_datetime(entry.get(k))
        if published_at is not None:
            break

    language = _first_text(entry, ("language", "lang"))

    return {
        "id": _first_text(entry, ID_KEYS),
        "title": _first_text(entry, TITLE_KEYS),
        "summary": _first_text(entry, SUMMARY_KEYS),
        "url": url,
        "source_name": source["name"],
        "source_domain": source["domain"] or _host(url),
        "published_at": published_at,
        "tags": _get_tags(entry),
        "language": language.lower() if language else None,
        "thumbnail": _first_text(entry, ("thumbnail", "image", "image_url")),
        "scores": _get_scores(entry),
    }
