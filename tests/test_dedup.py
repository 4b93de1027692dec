from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from mcp_news.dedup import dedupe_and_sort, deduplicate, identity_key
from mcp_news.models import NewsItem, Source
from mcp_news.normalizer import synthesize_id

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _item(
    item_id: str, title: str = "t", hours: int = 0, domain: str = "", summary: str = "", synthetic: bool = False
) -> NewsItem:
    return NewsItem(
        id=item_id,
        title=title,
        summary=summary,
        url="#",
        source=Source(name="s", domain=domain),
        published_at=BASE + timedelta(hours=hours),
        fetched_at=BASE,
        synthetic_id=synthetic,
    )


def test_newer_duplicate_wins() -> None:
    out = deduplicate([_item("a1", hours=0), _item("a1", hours=24)])
    assert len(out) == 1
    assert out[0].published_at == BASE + timedelta(hours=24)


def test_ties_keep_first_seen() -> None:
    out = deduplicate([_item("a1", summary="first"), _item("a1", summary="second")])
    assert out[0].summary == "first"


def test_synthetic_ids_key_on_title_and_domain() -> None:
    a = _item(synthesize_id("Hello ", "x.com"), title="Hello ", domain="x.com", hours=1, synthetic=True)
    b = _item(synthesize_id("  hello", "X.com"), title="  hello", domain="x.com", hours=2, synthetic=True)
    c = _item(synthesize_id("hello", "y.com"), title="hello", domain="y.com", hours=3, synthetic=True)
    assert a.id == b.id
    assert a.id != c.id
    assert identity_key(a) == identity_key(b)
    assert identity_key(a) != identity_key(c)
    out = dedupe_and_sort([a, b, c])
    assert [i.source.domain for i in out] == ["y.com", "x.com"]
    assert out[1].published_at == BASE + timedelta(hours=2)


def test_upstream_id_with_synthetic_prefix_is_kept_as_id() -> None:
    a = _item("auto-from-upstream-1", title="Same", domain="x.com")
    b = _item("auto-from-upstream-2", title="Same", domain="x.com")
    assert identity_key(a) == "id::auto-from-upstream-1"
    assert len(deduplicate([a, b])) == 2


def test_explicit_ids_do_not_collapse_on_title() -> None:
    out = deduplicate([_item("a", title="Same"), _item("b", title="Same")])
    assert len(out) == 2


def test_dedupe_and_sort_invariants() -> None:
    rng = random.Random(1234)
    items = [_item(f"id{rng.randint(0, 15)}", hours=rng.randint(-100, 100)) for _ in range(200)]
    out = dedupe_and_sort(items)

    assert len(out) <= len(items)
    keys = [identity_key(i) for i in out]
    assert len(keys) == len(set(keys))
    for a, b in zip(out, out[1:]):
        assert a.published_at >= b.published_at


def test_sort_is_stable_for_equal_timestamps() -> None:
    out = dedupe_and_sort([_item("x", hours=1), _item("y", hours=1), _item("z", hours=5)])
    assert [i.id for i in out] == ["z", "x", "y"]
