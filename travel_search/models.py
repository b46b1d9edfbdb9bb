"""Pydantic models for inventory items and request/response payloads."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

MAX_REASON_LENGTH = 200


class InventoryItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., gt=0)
    title: str
    location: str
    price: int = Field(..., ge=0, description="Estimated per-person cost in USD")
    tags: tuple[str, ...] = ()

    @field_validator("tags")
    @classmethod
    def _lowercase_tags(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(tag.strip().lower() for tag in value if tag.strip())


class SearchResult(BaseModel):
    id: int
    title: str
    location: str
    price: int
    tags: list[str]
    reason: str = Field(..., max_length=MAX_REASON_LENGTH)

    @classmethod
    def from_item(cls, item: InventoryItem, reason: str) -> "SearchResult":
        """Hydrate a result from the backing item; only ``reason`` comes from outside."""
        return cls(
            id=item.id,
            title=item.title,
            location=item.location,
            price=item.price,
            tags=list(item.tags),
            reason=reason[:MAX_REASON_LENGTH],
        )


class AIResultEntry(BaseModel):
    id: StrictInt
    reason: StrictStr


class AIResponse(BaseModel):
    results: list[AIResultEntry]


class SearchResponse(BaseModel):
    results: list[SearchResult]


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    provider: str
    model: str
    retry_enabled: bool
    fallback_enabled: bool
    inventory: int
    rate_limit_backend: str
