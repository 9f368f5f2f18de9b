from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

PLACEHOLDER_KEYS = {
    "gemini": "YOUR_GEMINI_API_KEY_HERE",
    "openai": "YOUR_OPENAI_API_KEY_HERE",
    "anthropic": "YOUR_CLAUDE_API_KEY_HERE",
}


class Settings(BaseSettings):
    # Preferred provider, tried first: gemini, openai, anthropic
    llm_provider: str = "gemini"

    # Gemini
    gemini_api_key: str = ""
    gemini_endpoint: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-1.5-flash-latest:generateContent"
    )
    gemini_max_requests_per_minute: int = 15
    gemini_enabled: bool = True

    # OpenAI (enabled automatically when a key is present)
    openai_api_key: str = ""
    openai_endpoint: str = "https://api.openai.com/v1/chat/completions"
    openai_model: str = "gpt-3.5-turbo"
    openai_max_requests_per_minute: int = 60
    openai_enabled: Optional[bool] = None

    # Anthropic / Claude (enabled automatically when a key is present)
    anthropic_api_key: str = ""
    anthropic_endpoint: str = "https://api.anthropic.com/v1/messages"
    anthropic_model: str = "claude-3-haiku-20240307"
    anthropic_max_requests_per_minute: int = 50
    anthropic_enabled: Optional[bool] = None

    # Manager policy
    request_timeout: float = 10.0  # seconds
    retry_count: int = 2

    # Ask the LLM for glosses the dictionary cannot produce (costs rate-limit slots)
    provider_glosses: bool = False

    cors_allow_origins: List[str] = ["*"]

    class Config:
        # Always load the backend-local env file, regardless of where the process is started from.
        env_file = str((Path(__file__).resolve().parent.parent / ".env"))
        env_file_encoding = "utf-8"
        extra = "ignore"

    def is_enabled(self, provider: str) -> bool:
        """Whether the provider is switched on. OpenAI/Claude default to "on iff a key is set"."""
        flag = getattr(self, f"{provider}_enabled")
        if flag is None:
            return self.has_key(provider)
        return bool(flag)

    def has_key(self, provider: str) -> bool:
        key = getattr(self, f"{provider}_api_key")
        return bool(key) and key != PLACEHOLDER_KEYS[provider]


def _key_looks_valid(provider: str, key: str) -> bool:
    if provider == "openai":
        return key.startswith("sk-")
    return len(key) > 10


def validate_api_keys(settings: Settings) -> dict:
    """Classify the configured keys without contacting any vendor.

    Returns a dict with ``valid``, ``invalid`` and ``warnings`` lists, keyed by
    provider name. Only enabled providers are inspected.
    """
    results: dict = {"valid": [], "invalid": [], "warnings": []}
    for provider in PLACEHOLDER_KEYS:
        if not settings.is_enabled(provider):
            continue
        if not settings.has_key(provider):
            results["warnings"].append(f"{provider} API key is not configured")
        elif _key_looks_valid(provider, getattr(settings, f"{provider}_api_key")):
            results["valid"].append(provider)
        else:
            results["invalid"].append(provider)
    return results


def config_info(settings: Settings) -> dict:
    """Public view of the configuration. Never includes the keys themselves."""
    info: dict = {
        provider: {
            "enabled": settings.is_enabled(provider),
            "has_key": settings.has_key(provider),
        }
        for provider in PLACEHOLDER_KEYS
    }
    info["system"] = {
        "preferred_provider": settings.llm_provider,
        "request_timeout": settings.request_timeout,
        "retry_count": settings.retry_count,
    }
    return info


def get_settings() -> Settings:
    settings = Settings()
    logger.info(f"[Config] Loaded settings. Preferred provider: {settings.llm_provider}")
    logger.info(f"[Config] Gemini API Key present: {settings.has_key('gemini')}")
    return settings
