"""Static travel inventory and lookup helpers."""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .config import settings
from .models import InventoryItem

logger = logging.getLogger(__name__)

# Add new destinations here. The model only sees id/title/location/tags, so the
# prompt does not need re-tuning when this list grows.
DEFAULT_INVENTORY: tuple[InventoryItem, ...] = (
    InventoryItem(
        id=1,
        title="High-Altitude Tea Trails",
        location="Nuwara Eliya",
        price=120,
        tags=("cold", "nature", "hiking"),
    ),
    InventoryItem(
        id=2,
        title="Coastal Heritage Wander",
        location="Galle Fort",
        price=45,
        tags=("history", "culture", "walking"),
    ),
    InventoryItem(
        id=3,
        title="Wild Safari Expedition",
        location="Yala",
        price=250,
        tags=("animals", "adventure", "photography"),
    ),
    InventoryItem(
        id=4,
        title="Surf & Chill Retreat",
        location="Arugam Bay",
        price=80,
        tags=("beach", "surfing", "young-vibe"),
    ),
    InventoryItem(
        id=5,
        title="Ancient City Exploration",
        location="Sigiriya",
        price=110,
        tags=("history", "climbing", "view"),
    ),
)


def _ensure_unique_ids(items: Iterable[InventoryItem]) -> None:
    seen: set[int] = set()
    for item in items:
        if item.id in seen:
            raise ValueError(f"Duplicate inventory id: {item.id}")
        seen.add(item.id)


def load_inventory(path: Path) -> tuple[InventoryItem, ...]:
    """Load inventory items from a JSON list, rejecting duplicate ids."""
    with path.open("r", encoding="utf-8") as fh:
        raw_items = json.load(fh)
    if not isinstance(raw_items, list):
        raise ValueError(f"Inventory file {path} must contain a JSON list")
    items = tuple(InventoryItem.model_validate(raw) for raw in raw_items)
    _ensure_unique_ids(items)
    logger.info("Loaded %s inventory items from %s", len(items), path)
    return items


@lru_cache(maxsize=1)
def get_inventory() -> tuple[InventoryItem, ...]:
    if settings.inventory_path:
        return load_inventory(Path(settings.inventory_path))
    return DEFAULT_INVENTORY


def find_item(inventory: Sequence[InventoryItem], item_id: int) -> Optional[InventoryItem]:
    for item in inventory:
        if item.id == item_id:
            return item
    return None


def project_for_prompt(inventory: Sequence[InventoryItem]) -> list[dict]:
    """Size-reduced view sent to the model; prices are withheld."""
    return [
        {"id": item.id, "title": item.title, "location": item.location, "tags": list(item.tags)}
        for item in inventory
    ]
