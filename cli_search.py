"""Terminal client that reuses the in-process search logic."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from time import perf_counter
from typing import Iterable, List

from travel_search import fallback
from travel_search.config import settings
from travel_search.errors import SearchError
from travel_search.inventory import get_inventory
from travel_search.models import SearchResult
from travel_search.query import prepare_query
from travel_search.search_service import get_search_service

GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"
SLOW_MS = 2000


async def perform_query(query: str, offline: bool = False) -> List[SearchResult]:
    cleaned = prepare_query(query, settings.max_query_length)
    if offline:
        return fallback.match(cleaned, get_inventory())
    return await get_search_service().search(cleaned)


def run_query(query: str, offline: bool) -> None:
    start = perf_counter()
    try:
        results = asyncio.run(perform_query(query, offline))
    except SearchError as exc:
        print(f"{RED}Query: {query} | error: {exc}{RESET}")
        return
    pretty_print_response(query, results, (perf_counter() - start) * 1000)


def interactive_shell(offline: bool) -> None:
    print("Interactive travel search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        run_query(query, offline)


def pretty_print_response(query: str, results: List[SearchResult], eta_ms: float) -> None:
    color = GREEN if eta_ms < SLOW_MS else RED
    eta_label = f"{color}{eta_ms:.1f} ms{RESET}"
    print(f"Query: {query} | results: {len(results)} | ETA: {eta_label}")
    for idx, item in enumerate(results, start=1):
        print(f"  {idx:02d}. #{item.id} | {item.title} | {item.location} | ${item.price} | {', '.join(item.tags)}")
        print(f"      {item.reason}")


def batch_mode(file_path: Path, offline: bool) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            run_query(query, offline)


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the travel search service")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--offline", action="store_true", help="Skip the AI provider and use keyword matching")
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.batch:
        batch_mode(args.batch, args.offline)
        return 0
    if args.query:
        run_query(args.query, args.offline)
        return 0
    interactive_shell(args.offline)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
