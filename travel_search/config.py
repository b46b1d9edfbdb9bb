"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _get_flag(name: str, default: str) -> bool:
    return _get_env(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    ai_provider: str = _get_env("AI_PROVIDER", "gemini").lower()
    gemini_api_key: str = _get_env("GEMINI_API_KEY", "")
    gemini_model: str = _get_env("GEMINI_MODEL", "gemini-2.0-flash")
    gemini_api_version: str = _get_env("GEMINI_API_VERSION", "v1beta")
    openai_api_key: str = _get_env("OPENAI_API_KEY", "")
    openai_model: str = _get_env("OPENAI_MODEL", "gpt-4o-mini")
    openai_base_url: str = _get_env("OPENAI_BASE_URL", "https://api.openai.com/v1")
    max_output_tokens: int = int(_get_env("MAX_OUTPUT_TOKENS", "512"))
    request_timeout_seconds: float = float(_get_env("REQUEST_TIMEOUT_SECONDS", "15"))
    max_retries: int = int(_get_env("MAX_RETRIES", "3"))
    retry_base_delay_seconds: float = float(_get_env("RETRY_BASE_DELAY_SECONDS", "2"))
    retry_enabled: bool = _get_flag("RETRY_ENABLED", "true")
    fallback_enabled: bool = _get_flag("FALLBACK_ENABLED", "true")
    rate_limit_requests: int = int(_get_env("RATE_LIMIT_REQUESTS", "5"))
    rate_limit_window_seconds: int = int(_get_env("RATE_LIMIT_WINDOW_SECONDS", "60"))
    rate_limit_max_keys: int = int(_get_env("RATE_LIMIT_MAX_KEYS", "10000"))
    rate_limit_backend: str = _get_env("RATE_LIMIT_BACKEND", "memory").lower()
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    max_query_length: int = int(_get_env("MAX_QUERY_LENGTH", "300"))
    inventory_path: str = _get_env("INVENTORY_PATH", "")
    log_level: str = _get_env("LOG_LEVEL", "INFO")

    @property
    def api_key(self) -> str:
        if self.ai_provider == "openai":
            return self.openai_api_key
        return self.gemini_api_key

    @property
    def model(self) -> str:
        if self.ai_provider == "openai":
            return self.openai_model
        return self.gemini_model


settings = Settings()
