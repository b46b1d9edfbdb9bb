"""FastAPI application wiring the travel search service."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .errors import CallerRateLimited, QueryValidationError, RateLimited, SearchError
from .models import ErrorResponse, HealthResponse, SearchResponse
from .query import client_identity, prepare_query
from .rate_limit import RateLimiter, backend_name, get_rate_limiter
from .search_service import TravelSearchService, get_search_service

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

CALLER_LIMIT_MESSAGE = "Too many requests. Please wait a minute and try again."
PROVIDER_QUOTA_MESSAGE = (
    "AI quota exceeded. Please wait a minute and try again, "
    "or check the API key configured for the search service."
)
GENERIC_ERROR_MESSAGE = "Something went wrong. Check the server logs for details."
ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in (400, 429, 500)}

app = FastAPI(title="Travel Search Service")


def _error(status_code: int, message: str, **kwargs: Any) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code, **kwargs)


@app.on_event("startup")
async def startup_event() -> None:
    logger.info(
        "Search provider=%s model=%s retry=%s fallback=%s",
        settings.ai_provider,
        settings.model,
        settings.retry_enabled,
        settings.fallback_enabled,
    )
    if not settings.api_key:
        logger.warning("No API key configured for %s; every search will fail", settings.ai_provider)


@app.get("/health", response_model=HealthResponse)
async def health(
    service: TravelSearchService = Depends(get_search_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        provider=service.client.provider,
        model=service.client.settings.model,
        retry_enabled=service.client.settings.retry_enabled,
        fallback_enabled=service.fallback_enabled,
        inventory=len(service.inventory),
        rate_limit_backend=backend_name(limiter),
    )


async def _read_query(request: Request) -> Any:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body.get("query") if isinstance(body, dict) else None


@app.post("/api/search", response_model=SearchResponse, responses=ERROR_RESPONSES)
async def search(
    request: Request,
    service: TravelSearchService = Depends(get_search_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    caller = client_identity(request.headers)
    try:
        decision = limiter.hit(caller)
        if not decision.allowed:
            raise CallerRateLimited(CALLER_LIMIT_MESSAGE, decision.retry_after)

        query = prepare_query(await _read_query(request), settings.max_query_length)
        results = await service.search(query)
        return SearchResponse(results=results)
    except CallerRateLimited as exc:
        logger.info("caller %s rate-limited, retry_after=%ss", caller, exc.retry_after)
        return _error(429, exc.message, headers={"Retry-After": str(exc.retry_after)})
    except QueryValidationError as exc:
        return _error(400, exc.message)
    except RateLimited as exc:
        logger.error("Search error: %s", exc)
        return _error(429, PROVIDER_QUOTA_MESSAGE)
    except SearchError as exc:
        logger.error("Search error (%s): %s", type(exc).__name__, exc)
        return _error(500, GENERIC_ERROR_MESSAGE)
    except Exception:
        logger.exception("Unexpected search failure")
        return _error(500, GENERIC_ERROR_MESSAGE)
