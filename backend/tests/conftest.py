"""
Shared fixtures: stub providers, a fake clock and isolated settings.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# backend/ on sys.path so `prompt_kun` imports without installation
backend_root = Path(__file__).parent.parent
sys.path.insert(0, str(backend_root))

from prompt_kun.config import Settings  # noqa: E402
from prompt_kun.services.llm.base import ProviderConfig  # noqa: E402

ENV_VARS = [
    "LLM_PROVIDER",
    "GEMINI_API_KEY", "GEMINI_ENABLED", "GEMINI_MAX_REQUESTS_PER_MINUTE",
    "OPENAI_API_KEY", "OPENAI_ENABLED", "OPENAI_MODEL",
    "ANTHROPIC_API_KEY", "ANTHROPIC_ENABLED", "ANTHROPIC_MODEL",
    "REQUEST_TIMEOUT", "RETRY_COUNT", "PROVIDER_GLOSSES",
]


class FakeClock:
    """Manual clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubProvider:
    """Provider double with scripted results.

    Each item of ``script`` is either a list of prompts (returned) or an
    exception (raised). The last item repeats once the script runs out.
    """

    def __init__(self, name: str, script, max_requests_per_minute: int = 60, delay: float = 0.0):
        self.name = name
        self.config = ProviderConfig(
            name=name,
            endpoint=f"https://{name.lower()}.invalid",
            api_key="test-key-0123456789",
            max_requests_per_minute=max_requests_per_minute,
        )
        self.script = list(script)
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.translate_calls: list[str] = []
        self.translation = f"{name} 翻訳"

    def _next(self):
        item = self.script[min(len(self.calls) - 1, len(self.script) - 1)]
        if isinstance(item, BaseException):
            raise item
        return list(item)

    async def generate(self, keyword: str, style_variant: str = "sd15"):
        self.calls.append((keyword, style_variant))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._next()

    async def translate(self, text: str) -> str:
        self.translate_calls.append(text)
        if isinstance(self.translation, BaseException):
            raise self.translation
        return self.translation


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        return Settings(_env_file=None, **overrides)

    return _make
