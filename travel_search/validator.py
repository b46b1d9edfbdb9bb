"""Parsing and guardrails for the AI provider's JSON reply."""
from __future__ import annotations

import json
import logging
import re
from typing import List, Sequence

from pydantic import ValidationError

from .errors import MalformedResponse, SchemaViolation
from .inventory import find_item
from .models import AIResponse, InventoryItem, SearchResult

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 300
_CODE_FENCE_RE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper if the model added one anyway."""
    stripped = text.strip()
    fenced = _CODE_FENCE_RE.match(stripped)
    if fenced:
        return fenced.group(1).strip()
    return stripped


def validate(raw_text: str, inventory: Sequence[InventoryItem]) -> List[SearchResult]:
    payload = strip_code_fences(raw_text)
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as exc:
        snippet = raw_text[:SNIPPET_LENGTH]
        logger.error("Non-JSON response from provider: %r", snippet)
        raise MalformedResponse(snippet) from exc

    try:
        validated = AIResponse.model_validate(parsed)
    except ValidationError as exc:
        logger.error("Schema validation failed: %s | parsed=%r", exc, parsed)
        raise SchemaViolation(str(exc)) from exc

    results: List[SearchResult] = []
    seen: set[int] = set()
    for entry in validated.results:
        # The model may only point at existing destinations, never invent them.
        item = find_item(inventory, entry.id)
        if item is None:
            logger.warning("Dropping result with unknown inventory id %s", entry.id)
            continue
        if entry.id in seen:
            continue
        seen.add(entry.id)
        results.append(SearchResult.from_item(item, entry.reason))
    return results
