from __future__ import annotations

import json
from datetime import datetime, timezone

from mcp_news.extractors import PathExtractor, RunDataExtractor, default_extractors, extract_records
from mcp_news.normalizer import (
    DEFAULT_SUMMARY,
    DEFAULT_TAG,
    DEFAULT_TITLE,
    DEFAULT_SOURCE,
    SYNTHETIC_ID_PREFIX,
    normalize_records,
    to_news_item,
)
from mcp_news.parser import parse_record, to_datetime

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _one(raw):
    return to_news_item(parse_record(raw), now=NOW)


def test_aliases_are_resolved() -> None:
    item = _one({
        "guid": "g-1",
        "headline": "Chips ahoy",
        "description": "A summary",
        "link": "https://www.example.com/a",
        "author": "Jane",
        "pubDate": "Tue, 02 Jan 2024 10:00:00 GMT",
        "category": "Hardware",
    })
    assert item.id == "g-1"
    assert not item.synthetic_id
    assert item.title == "Chips ahoy"
    assert item.summary == "A summary"
    assert item.url == "https://www.example.com/a"
    assert item.source.name == "Jane"
    assert item.source.domain == "example.com"
    assert item.published_at == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)
    assert item.tags == ("Hardware",)


def test_defaults_for_empty_record() -> None:
    item = _one({})
    assert item.synthetic_id
    assert item.id.startswith(SYNTHETIC_ID_PREFIX)
    assert item.title == DEFAULT_TITLE
    assert item.summary == DEFAULT_SUMMARY
    assert item.url == "#"
    assert item.source.name == DEFAULT_SOURCE
    assert item.published_at == NOW
    assert item.fetched_at == NOW
    assert item.tags == (DEFAULT_TAG,)
    assert (item.score.freshness, item.score.relevance, item.score.popularity) == (1.0, 0.9, 0.5)
    assert item.language == "it"


def test_normalization_is_idempotent() -> None:
    raw = {"title": "Same story", "summary": "x"}
    first = _one(raw)
    second = _one(raw)
    assert first == second
    assert first.id == second.id


def test_nested_source_scores_and_tags() -> None:
    item = _one({
        "id": 42,
        "title": "T",
        "source": {"name": "WIRED", "domain": "wired.com"},
        "tags": ["AI", "AI", {"term": "Chips"}],
        "score": {"freshness": 2, "relevance": "0.3"},
        "popularity": 0.7,
        "timestamp": 1704153600000,
        "lang": "EN",
    })
    assert item.id == "42"
    assert item.source.name == "WIRED"
    assert item.source.domain == "wired.com"
    assert item.tags == ("AI", "Chips")
    assert item.score.freshness == 1.0  # clamped
    assert item.score.relevance == 0.3
    assert item.score.popularity == 0.7
    assert item.published_at == datetime(2024, 1, 2, 0, 0, tzinfo=timezone.utc)
    assert item.language == "en"


def test_source_name_prefers_flat_field() -> None:
    item = _one({"title": "T", "source_name": "ANSA", "source": {"name": "Other"}})
    assert item.source.name == "ANSA"


def test_to_datetime_formats() -> None:
    expected = datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert to_datetime("2024-01-02T00:00:00Z") == expected
    assert to_datetime("2024-01-02T01:00:00+01:00") == expected
    assert to_datetime("1704153600") == expected
    assert to_datetime(1704153600) == expected
    assert to_datetime(datetime(2024, 1, 2)) == expected
    assert to_datetime("not a date") is None
    assert to_datetime(None) is None


def test_normalize_records_skips_nothing_for_sparse_rows() -> None:
    items = normalize_records([{"title": "a"}, {"title": "b"}], now=NOW)
    assert [i.title for i in items] == ["a", "b"]


# -- extraction --

def _extract(payload):
    return extract_records(payload, default_extractors())


def test_extract_direct_array() -> None:
    assert _extract([{"id": 1}, "junk"]) == [{"id": 1}]


def test_extract_text_content_inside_result() -> None:
    payload = {
        "jsonrpc": "2.0",
        "id": "r",
        "result": {"content": [
            {"type": "image", "data": "..."},
            {"type": "text", "text": json.dumps({"news": [{"id": "n1"}]})},
        ]},
    }
    assert _extract(payload) == [{"id": "n1"}]


def test_extract_text_content_plain_array() -> None:
    payload = {"content": [{"type": "text", "text": json.dumps([{"id": "n1"}, {"id": "n2"}])}]}
    assert _extract(payload) == [{"id": "n1"}, {"id": "n2"}]


def test_extract_result_array_even_when_empty() -> None:
    assert _extract({"result": []}) == []


def test_extract_run_data_any_node() -> None:
    payload = {"result": {"runData": {"Fetch News": [{"data": {"main": [[{"json": {"data": [{"id": "w1"}]}}]]}}]}}}
    assert _extract(payload) == [{"id": "w1"}]


def test_extract_run_data_named_node() -> None:
    run = [{"data": {"main": [[{"json": {"data": [{"id": "w2"}]}}]]}}]
    payload = {"result": {"runData": {"Other": [{}], "Agent": run}}}
    assert RunDataExtractor("Agent")(payload) == [{"id": "w2"}]
    assert RunDataExtractor("Missing")(payload) is None


def test_extract_unknown_shape_is_none() -> None:
    assert _extract({"message": "ok"}) is None
    assert _extract("text") is None


def test_path_extractor() -> None:
    extractor = PathExtractor("data.feeds.0.entries")
    payload = {"data": {"feeds": [{"entries": [{"id": "p"}]}]}}
    assert extractor(payload) == [{"id": "p"}]
    assert extract_records(payload, [extractor]) == [{"id": "p"}]
    assert extractor({"data": {}}) is None
