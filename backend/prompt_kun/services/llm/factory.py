from __future__ import annotations

import logging

import httpx

from ...config import Settings
from .anthropic_provider import AnthropicProvider
from .base import ProviderClient, ProviderConfig
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

# Settings prefix -> client class. Order is the default rotation order.
PROVIDER_CLASSES: dict[str, type[ProviderClient]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}

# Accepted spellings for LLM_PROVIDER.
PROVIDER_ALIASES = {
    "gemini": "gemini",
    "google": "gemini",
    "openai": "openai",
    "anthropic": "anthropic",
    "claude": "anthropic",
}


def provider_config(settings: Settings, key: str) -> ProviderConfig:
    """Freeze the settings for one vendor into a ProviderConfig."""
    return ProviderConfig(
        name=PROVIDER_CLASSES[key].name,
        endpoint=getattr(settings, f"{key}_endpoint"),
        api_key=getattr(settings, f"{key}_api_key"),
        model=getattr(settings, f"{key}_model", None),
        max_requests_per_minute=getattr(settings, f"{key}_max_requests_per_minute"),
        enabled=settings.is_enabled(key),
    )


def build_providers(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ProviderClient]:
    """Instantiate every enabled provider that has a key.

    The provider named by LLM_PROVIDER is moved to the front so it is tried
    first; the rest keep their table order.
    """
    providers: list[ProviderClient] = []
    for key, cls in PROVIDER_CLASSES.items():
        cfg = provider_config(settings, key)
        if not cfg.enabled:
            continue
        if not settings.has_key(key):
            logger.warning(f"[LLM] {cfg.name} is enabled but has no API key; skipping")
            continue
        providers.append(cls(cfg, transport=transport))

    preferred = PROVIDER_ALIASES.get((settings.llm_provider or "").strip().lower())
    if preferred:
        preferred_name = PROVIDER_CLASSES[preferred].name
        providers.sort(key=lambda p: 0 if p.name == preferred_name else 1)

    logger.info(f"[LLM] {len(providers)} provider(s) available: {[p.name for p in providers]}")
    return providers
