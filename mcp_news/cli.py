"""Command line entry point: ``python -m mcp_news fetch`` / ``python -m mcp_news status``."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional, TextIO

from .config import NewsConfig
from .core import NewsFetcher
from .exceptions import ConfigurationError
from .models import FetchResult, isoformat
from .protocol import NewsQuery
from .status import status_report

EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mcp-news", description="Fetch news from the upstream workflow.")
    parser.add_argument("--env-file", help="Path to a .env file (default: ./.env)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline steps to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Fetch news once and print it")
    fetch.add_argument("--tag", action="append", default=[], dest="tags", help="Filter tag (repeatable)")
    fetch.add_argument("--token", help="Bearer token overriding MCP_TOKEN")
    fetch.add_argument("--json", action="store_true", help="Print the full JSON response")
    fetch.add_argument("--trace", action="store_true", help="Print the diagnostic trace")

    sub.add_parser("status", help="Print the local status report")
    return parser


def render_result(result: FetchResult, out: TextIO) -> None:
    out.write(f"[{result.source_tag}] {result.count} item(s) at {isoformat(result.generated_at)}\n")
    for item in result.items:
        out.write(f"{isoformat(item.published_at)}  {item.source.name}  {item.title}\n")
        out.write(f"    {item.url}\n")


async def _run_fetch(args: argparse.Namespace, config: NewsConfig) -> FetchResult:
    async with NewsFetcher(config) as fetcher:
        return await fetcher.fetch(NewsQuery(tags=tuple(args.tags)), token=args.token)


def main(argv: Optional[List[str]] = None, *, out: TextIO = sys.stdout, err: TextIO = sys.stderr) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=err,
    )
    try:
        config = NewsConfig.from_env(args.env_file)
        if args.command == "status":
            out.write(json.dumps(status_report(config), indent=2) + "\n")
            return 0
        result = asyncio.run(_run_fetch(args, config))
    except ConfigurationError as e:
        err.write(f"Configuration error: {e}\n")
        return EXIT_CONFIG_ERROR

    if args.json:
        out.write(json.dumps(result.to_dict(), indent=2, ensure_ascii=False) + "\n")
    else:
        render_result(result, out)
    if args.trace:
        for line in result.trace:
            err.write(f"  trace: {line}\n")
    if result.is_fallback:
        err.write(f"Running in backup mode ({result.source_tag})\n")
    return 0
