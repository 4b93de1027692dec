"""
Locate the list of raw news records inside an upstream payload.

The upstream workflow has answered with several shapes over time, so each
known shape is an extractor: a pure function ``payload -> list | None``.
``None`` means "not this shape"; an empty list is a match with no records.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

Extractor = Callable[[Any], Optional[List[Any]]]

TEXT_CONTENT_KEYS = ("items", "news", "result")


def direct_array(payload: Any) -> Optional[List[Any]]:
    return payload if isinstance(payload, list) else None


def text_content(payload: Any, keys: Sequence[str] = TEXT_CONTENT_KEYS) -> Optional[List[Any]]:
    """MCP tool result: ``{"content": [{"type": "text", "text": "<json>"}]}``."""
    if not isinstance(payload, dict) or not isinstance(payload.get("content"), list):
        return None
    for block in payload["content"]:
        if not isinstance(block, dict) or block.get("type") != "text":
            continue
        text = block.get("text")
        if not isinstance(text, str):
            continue
        try:
            doc = json.loads(text)
        except ValueError:
            logger.debug("Text content block is not JSON, skipping")
            continue
        if isinstance(doc, list):
            return doc
        if isinstance(doc, dict):
            for key in keys:
                if isinstance(doc.get(key), list):
                    return doc[key]
    return None


def result_array(payload: Any) -> Optional[List[Any]]:
    if isinstance(payload, dict) and isinstance(payload.get("result"), list):
        return payload["result"]
    return None


def _walk(node: Any, path: Sequence[Union[str, int]]) -> Any:
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or not -len(node) <= step < len(node):
                return None
            node = node[step]
        else:
            if not isinstance(node, dict) or step not in node:
                return None
            node = node[step]
    return node


class PathExtractor:
    """Follow a fixed path of keys and list indexes; match when it ends on a list."""

    def __init__(self, path: Union[str, Sequence[Union[str, int]]]) -> None:
        if isinstance(path, str):
            path = [int(p) if p.lstrip("-").isdigit() else p for p in path.split(".") if p]
        self.path = tuple(path)

    def __call__(self, payload: Any) -> Optional[List[Any]]:
        node = _walk(payload, self.path)
        return node if isinstance(node, list) else None

    def __repr__(self) -> str:
        return f"PathExtractor({'.'.join(str(p) for p in self.path)!r})"


_RUN_NODE_PATH = (0, "data", "main", 0, 0, "json", "data")


class RunDataExtractor:
    """
    Workflow-run export: ``result.runData[<node>][0].data.main[0][0].json.data``.

    With no node name configured, the first node carrying that path wins.
    """

    def __init__(self, node: Optional[str] = None) -> None:
        self.node = node

    def __call__(self, payload: Any) -> Optional[List[Any]]:
        run_data = _walk(payload, ("result", "runData"))
        if not isinstance(run_data, dict):
            run_data = _walk(payload, ("runData",))
        if not isinstance(run_data, dict):
            return None
        nodes = [self.node] if self.node else list(run_data)
        for name in nodes:
            found = _walk(run_data.get(name), _RUN_NODE_PATH)
            if isinstance(found, list):
                return found
        return None


def default_extractors(run_data_node: Optional[str] = None) -> List[Extractor]:
    return [direct_array, text_content, result_array, RunDataExtractor(run_data_node)]


def extract_records(payload: Any, extractors: Sequence[Extractor]) -> Optional[List[Dict[str, Any]]]:
    """
    Try each extractor in order; the first non-None answer wins.

    When nothing matches at the top level and the payload wraps a ``result``
    object (a JSON-RPC success envelope), the extractors get one more pass on it.
    Elements that are not objects are dropped.
    """
    candidates = [payload]
    if isinstance(payload, dict) and isinstance(payload.get("result"), dict):
        candidates.append(payload["result"])
    for candidate in candidates:
        for extractor in extractors:
            found = extractor(candidate)
            if found is not None:
                logger.debug("Records located by %r", getattr(extractor, "__name__", extractor))
                return [r for r in found if isinstance(r, dict)]
    return None
