"""Search orchestration: prompt the model, validate its reply, fall back offline."""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from time import perf_counter
from typing import List, Sequence

from . import fallback
from .ai_client import AIClient
from .config import settings
from .errors import RateLimited
from .inventory import get_inventory, project_for_prompt
from .models import InventoryItem, SearchResult
from .validator import validate

logger = logging.getLogger(__name__)


def build_prompt(query: str, inventory: Sequence[InventoryItem]) -> str:
    slim = json.dumps(project_for_prompt(inventory), ensure_ascii=False)
    return (
        f"Inventory: {slim}\n\n"
        f'User query: "{query}"\n\n'
        'Return a JSON object in this exact format: {"results":[{"id":<number>,"reason":"<why it matches>"}]}\n'
        "Only include items that genuinely match the query."
    )


class TravelSearchService:
    """Ranks the inventory for a free-text query through the AI provider."""

    def __init__(
        self,
        client: AIClient,
        inventory: Sequence[InventoryItem],
        *,
        fallback_enabled: bool = True,
    ) -> None:
        self.client = client
        self.inventory = tuple(inventory)
        self.fallback_enabled = fallback_enabled

    async def search(self, query: str) -> List[SearchResult]:
        t0 = perf_counter()
        prompt = build_prompt(query, self.inventory)
        try:
            raw_text = await self.client.call(prompt)
        except RateLimited:
            if not self.fallback_enabled:
                raise
            logger.warning("Provider rate-limited, using local keyword fallback q=%r", query)
            results = fallback.match(query, self.inventory)
            logger.info(
                "timing: total=%.2fms q=%r results=%s fallback=1",
                (perf_counter() - t0) * 1000,
                query,
                len(results),
            )
            return results
        t1 = perf_counter()

        results = validate(raw_text, self.inventory)
        t2 = perf_counter()
        logger.info(
            "timing: total=%.2fms ai=%.2fms validate=%.2fms q=%r results=%s fallback=0",
            (t2 - t0) * 1000,
            (t1 - t0) * 1000,
            (t2 - t1) * 1000,
            query,
            len(results),
        )
        return results


@lru_cache(maxsize=1)
def get_search_service() -> TravelSearchService:
    return TravelSearchService(
        AIClient(settings),
        get_inventory(),
        fallback_enabled=settings.fallback_enabled,
    )


async def search_travel(query: str) -> List[SearchResult]:
    return await get_search_service().search(query)
