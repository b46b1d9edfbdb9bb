"""Thin async wrapper around the AI provider's generation endpoint.

Two wire formats are supported and selected through ``AI_PROVIDER``:

* ``gemini``: ``POST /{version}/models/{model}:generateContent`` on the Google
  Generative Language API, with the JSON-only instruction passed as
  ``systemInstruction``.
* ``openai``: ``POST {base_url}/chat/completions`` on any OpenAI-compatible
  server, with the instruction passed as the system message.

A 429 from either provider is retried with exponential backoff
(``base * 2 ** attempt``); once the retries are spent the call fails with
:class:`RateLimited`, which the orchestrator can turn into fallback results.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx

from .config import Settings, settings as default_settings
from .errors import (
    EmptyResponse,
    MissingAPIKey,
    ProviderError,
    ProviderTimeout,
    RateLimited,
)

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a travel recommendation assistant. "
    "Always respond with raw JSON only. No markdown, no explanation."
)
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"
RATE_LIMIT_STATUS = 429

Sleep = Callable[[float], Awaitable[Any]]


def backoff_delay(base_delay: float, attempt: int) -> float:
    return base_delay * 2**attempt


def _provider_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:300]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.text[:300]


class AIClient:
    """Sends one prompt per call and returns the provider's raw text."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings or default_settings
        self._transport = transport
        self._sleep = sleep

    @property
    def provider(self) -> str:
        return self.settings.ai_provider

    @property
    def max_retries(self) -> int:
        return self.settings.max_retries if self.settings.retry_enabled else 0

    def _build_request(self, prompt: str, api_key: str) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        cfg = self.settings
        if self.provider == "openai":
            url = f"{cfg.openai_base_url.rstrip('/')}/chat/completions"
            headers = {"Authorization": f"Bearer {api_key}"}
            payload = {
                "model": cfg.openai_model,
                "max_tokens": cfg.max_output_tokens,
                "response_format": {"type": "json_object"},
                "messages": [
                    {"role": "system", "content": SYSTEM_INSTRUCTION},
                    {"role": "user", "content": prompt},
                ],
            }
            return url, headers, payload

        url = f"{GEMINI_BASE_URL}/{cfg.gemini_api_version}/models/{cfg.gemini_model}:generateContent"
        headers = {"x-goog-api-key": api_key}
        payload = {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": cfg.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }
        return url, headers, payload

    def _extract_text(self, body: Any) -> str:
        """Pull the reply text out of the provider body; any unexpected shape yields ""."""
        if not isinstance(body, dict):
            return ""
        if self.provider == "openai":
            choices = body.get("choices")
            if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
                return ""
            message = choices[0].get("message")
            if not isinstance(message, dict):
                return ""
            content = message.get("content")
            return content if isinstance(content, str) else ""

        candidates = body.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return ""
        content = candidates[0].get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""
        return "".join(
            part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)
        )

    async def call(self, prompt: str) -> str:
        api_key = self.settings.api_key
        if not api_key:
            raise MissingAPIKey(f"No API key configured for provider {self.provider!r}")

        url, headers, payload = self._build_request(prompt, api_key)
        timeout = httpx.Timeout(self.settings.request_timeout_seconds)

        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            for attempt in range(self.max_retries + 1):
                try:
                    response = await client.post(url, headers=headers, json=payload)
                except httpx.TimeoutException as exc:
                    raise ProviderTimeout(
                        f"{self.provider} did not respond within {self.settings.request_timeout_seconds}s"
                    ) from exc
                except httpx.HTTPError as exc:
                    raise ProviderError(None, str(exc)) from exc

                if response.status_code == RATE_LIMIT_STATUS:
                    if attempt < self.max_retries:
                        delay = backoff_delay(self.settings.retry_base_delay_seconds, attempt)
                        logger.warning(
                            "%s 429, retrying in %.1fs (attempt %s/%s)",
                            self.provider,
                            delay,
                            attempt + 1,
                            self.max_retries,
                        )
                        await self._sleep(delay)
                        continue
                    break

                if not response.is_success:
                    raise ProviderError(response.status_code, _provider_message(response))

                try:
                    body = response.json()
                except ValueError:
                    body = None
                text = self._extract_text(body)
                if not text.strip():
                    raise EmptyResponse(f"Empty response from {self.provider}")
                return text

        raise RateLimited(
            f"{self.provider} quota exhausted",
            {"attempts": self.max_retries + 1},
        )
