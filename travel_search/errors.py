"""Exception hierarchy for the search pipeline.

Provider-side failures (:class:`ProviderFailure` subclasses) carry diagnostic
details meant for server logs only; the HTTP layer replaces them with a
generic message. Caller-side failures carry a message that is safe to echo.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class SearchError(Exception):
    """Base exception for every failure raised while serving a search."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(SearchError):
    """Raised when the service is missing required configuration."""


class MissingAPIKey(ConfigurationError):
    """Raised when no API key is configured for the selected provider."""


class ProviderFailure(SearchError):
    """Raised when the AI provider call does not yield usable content."""


class RateLimited(ProviderFailure):
    """The provider kept answering 429 after every retry was spent."""


class ProviderTimeout(ProviderFailure):
    """The provider did not answer within the configured timeout."""


class ProviderError(ProviderFailure):
    """Non-success status (or transport failure) reported by the provider."""

    def __init__(self, status: Optional[int], provider_message: str) -> None:
        self.status = status
        self.provider_message = provider_message
        super().__init__(
            "AI provider request failed",
            {"status": status, "provider_message": provider_message},
        )


class EmptyResponse(ProviderFailure):
    """The provider answered successfully but without any text."""


class MalformedResponse(ProviderFailure):
    """The provider text could not be parsed as JSON."""

    def __init__(self, snippet: str) -> None:
        self.snippet = snippet
        super().__init__("AI provider returned non-JSON content", {"snippet": snippet})


class SchemaViolation(ProviderFailure):
    """The provider JSON did not match the expected results schema."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__("AI provider response failed schema validation", {"detail": detail})


class QueryValidationError(SearchError):
    """Caller input is malformed; the message is echoed back with a 400."""


class CallerRateLimited(SearchError):
    """A single caller exceeded its request budget for the current window."""

    def __init__(self, message: str, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(message, {"retry_after": retry_after})
