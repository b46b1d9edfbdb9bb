"""Offline keyword matcher used when the AI provider is out of quota."""
from __future__ import annotations

import logging
import re
from typing import List, Sequence

from .models import InventoryItem, SearchResult

logger = logging.getLogger(__name__)

_NON_WORD_RE = re.compile(r"\W+")
MIN_TOKEN_LENGTH = 3
NO_MATCH_REASON = "Showing all destinations (AI quota exceeded, try again later)."


def tokenize(query: str) -> List[str]:
    """Lowercase, split on non-word runs, drop short tokens and repeats."""
    tokens = (token for token in _NON_WORD_RE.split(query.lower()) if len(token) >= MIN_TOKEN_LENGTH)
    return list(dict.fromkeys(tokens))


def _haystack(item: InventoryItem) -> str:
    return " ".join([item.title.lower(), item.location.lower(), *(tag.lower() for tag in item.tags)])


def _matched_reason(matches: Sequence[str]) -> str:
    return f'Matched your search for "{", ".join(matches)}" (offline mode, AI quota exceeded).'


def match(query: str, inventory: Sequence[InventoryItem]) -> List[SearchResult]:
    tokens = tokenize(query)
    scored = []
    for item in inventory:
        haystack = _haystack(item)
        matches = [token for token in tokens if token in haystack]
        if matches:
            scored.append((item, matches))

    # list.sort is stable even with reverse=True, so ties keep inventory order.
    scored.sort(key=lambda pair: len(pair[1]), reverse=True)
    logger.debug("fallback q=%r tokens=%s matched=%s", query, tokens, [item.id for item, _ in scored])

    if not scored:
        return [SearchResult.from_item(item, NO_MATCH_REASON) for item in inventory]
    return [SearchResult.from_item(item, _matched_reason(matches)) for item, matches in scored]
