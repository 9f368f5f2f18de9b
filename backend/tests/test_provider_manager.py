"""
ProviderManager: rotation, retry/backoff, rate limiting and timeouts
"""

import asyncio

import pytest

from conftest import StubProvider
from prompt_kun.services.llm.errors import (
    AllProvidersFailedError,
    NoProvidersAvailableError,
    ProviderTimeoutError,
    RateLimitedError,
    VendorHttpError,
)
from prompt_kun.services.llm.provider_manager import ProviderManager

PROMPTS = ["sad", "crying", "melancholy", "sorrow"]


def _fail(name="Gemini", status=500):
    return VendorHttpError(name, status, "boom")


def _manager(providers, clock, **kwargs):
    kwargs.setdefault("max_retries", 2)
    kwargs.setdefault("request_timeout", 5.0)
    return ProviderManager(providers, clock=clock, sleep=clock.sleep, **kwargs)


class TestGenerate:
    def test_first_provider_success(self, clock):
        gemini = StubProvider("Gemini", [PROMPTS])
        openai = StubProvider("OpenAI", [["unused"]])
        manager = _manager([gemini, openai], clock)

        assert asyncio.run(manager.generate("悲しい", "illustrious")) == PROMPTS
        assert gemini.calls == [("悲しい", "illustrious")]
        assert openai.calls == []
        assert clock.sleeps == []

    def test_retry_count_is_exact(self, clock):
        gemini = StubProvider("Gemini", [_fail()])
        openai = StubProvider("OpenAI", [PROMPTS])
        manager = _manager([gemini, openai], clock, max_retries=2)

        assert asyncio.run(manager.generate("悲しい")) == PROMPTS
        assert len(gemini.calls) == 3
        assert len(openai.calls) == 1

    def test_exponential_backoff(self, clock):
        gemini = StubProvider("Gemini", [_fail()])
        manager = _manager([gemini], clock, max_retries=3)

        with pytest.raises(AllProvidersFailedError):
            asyncio.run(manager.generate("悲しい"))
        assert clock.sleeps == [2.0, 4.0, 8.0]

    def test_retry_then_success_on_same_provider(self, clock):
        gemini = StubProvider("Gemini", [_fail(), PROMPTS])
        openai = StubProvider("OpenAI", [["unused"]])
        manager = _manager([gemini, openai], clock)

        assert asyncio.run(manager.generate("悲しい")) == PROMPTS
        assert len(gemini.calls) == 2
        assert openai.calls == []
        assert manager.current_provider is gemini

    def test_cursor_persists_across_calls(self, clock):
        gemini = StubProvider("Gemini", [_fail()])
        openai = StubProvider("OpenAI", [PROMPTS])
        manager = _manager([gemini, openai], clock, max_retries=0)

        asyncio.run(manager.generate("一回目"))
        asyncio.run(manager.generate("二回目"))

        assert len(gemini.calls) == 1
        assert [c[0] for c in openai.calls] == ["一回目", "二回目"]
        assert manager.current_provider is openai

    def test_round_robin_wraps(self, clock):
        a = StubProvider("A", [_fail("A")])
        b = StubProvider("B", [_fail("B")])
        c = StubProvider("C", [PROMPTS])
        manager = _manager([b, c, a], clock, max_retries=0)
        # cursor starts at B; B fails, C succeeds
        asyncio.run(manager.generate("x"))
        assert manager.current_provider is c

        c.script = [_fail("C")]
        a.script = [PROMPTS]
        # C fails, A succeeds; B is not revisited
        assert asyncio.run(manager.generate("y")) == PROMPTS
        assert len(b.calls) == 1
        assert manager.current_provider is a

    def test_all_providers_fail(self, clock):
        gemini = StubProvider("Gemini", [_fail("Gemini", 500)])
        openai = StubProvider("OpenAI", [_fail("OpenAI", 401)])
        manager = _manager([gemini, openai], clock, max_retries=1)

        with pytest.raises(AllProvidersFailedError) as exc_info:
            asyncio.run(manager.generate("悲しい"))

        assert isinstance(exc_info.value.last_error, VendorHttpError)
        assert exc_info.value.last_error.status == 401
        assert "All providers failed" in str(exc_info.value)
        assert len(gemini.calls) == 2
        assert len(openai.calls) == 2
        # every provider tried once, cursor back at the start
        assert manager.current_provider is gemini

    def test_no_providers(self, clock):
        manager = _manager([], clock)

        with pytest.raises(NoProvidersAvailableError) as exc_info:
            asyncio.run(manager.generate("悲しい"))

        assert isinstance(exc_info.value, AllProvidersFailedError)
        assert "no providers available" in str(exc_info.value)
        assert manager.current_provider is None

    def test_timeout(self, clock):
        slow = StubProvider("Slow", [PROMPTS], delay=5.0)
        fast = StubProvider("Fast", [["fast"]])
        manager = _manager([slow, fast], clock, max_retries=1, request_timeout=0.01)

        assert asyncio.run(manager.generate("悲しい")) == ["fast"]
        assert len(slow.calls) == 2

    def test_timeout_error_kind(self, clock):
        slow = StubProvider("Slow", [PROMPTS], delay=5.0)
        manager = _manager([slow], clock, max_retries=0, request_timeout=0.01)

        with pytest.raises(AllProvidersFailedError) as exc_info:
            asyncio.run(manager.generate("悲しい"))

        err = exc_info.value.last_error
        assert isinstance(err, ProviderTimeoutError)
        assert isinstance(err, TimeoutError)
        assert "timeout" in str(err)


class TestRateLimit:
    def test_n_plus_one_rejected_locally(self, clock):
        gemini = StubProvider("Gemini", [PROMPTS], max_requests_per_minute=3)
        manager = _manager([gemini], clock)

        for _ in range(3):
            asyncio.run(manager.generate("悲しい"))
            clock.advance(1)

        with pytest.raises(AllProvidersFailedError) as exc_info:
            asyncio.run(manager.generate("悲しい"))

        assert isinstance(exc_info.value.last_error, RateLimitedError)
        assert len(gemini.calls) == 3
        # rate limiting is not retried with backoff
        assert clock.sleeps == []

    def test_window_slides(self, clock):
        gemini = StubProvider("Gemini", [PROMPTS], max_requests_per_minute=2)
        manager = _manager([gemini], clock)

        asyncio.run(manager.generate("a"))          # t=0
        clock.advance(30)
        asyncio.run(manager.generate("b"))          # t=30
        clock.advance(29)
        with pytest.raises(AllProvidersFailedError):
            asyncio.run(manager.generate("c"))      # t=59, window full

        clock.advance(1)                            # t=60, first entry expires
        assert asyncio.run(manager.generate("d")) == PROMPTS
        assert [c[0] for c in gemini.calls] == ["a", "b", "d"]

    def test_failed_attempts_count(self, clock):
        gemini = StubProvider("Gemini", [_fail()], max_requests_per_minute=2)
        openai = StubProvider("OpenAI", [PROMPTS])
        manager = _manager([gemini, openai], clock, max_retries=5)

        assert asyncio.run(manager.generate("悲しい")) == PROMPTS
        # two network attempts, then the third is refused locally
        assert len(gemini.calls) == 2
        assert manager.get_stats()["stats"]["Gemini"]["request_count"] == 2

    def test_rate_limited_provider_rotates(self, clock):
        gemini = StubProvider("Gemini", [PROMPTS], max_requests_per_minute=1)
        openai = StubProvider("OpenAI", [["openai"]])
        manager = _manager([gemini, openai], clock)

        assert asyncio.run(manager.generate("a")) == PROMPTS
        assert asyncio.run(manager.generate("b")) == ["openai"]
        assert manager.current_provider is openai


class TestTranslate:
    def test_uses_current_provider_once(self, clock):
        gemini = StubProvider("Gemini", [PROMPTS])
        openai = StubProvider("OpenAI", [PROMPTS])
        manager = _manager([gemini, openai], clock)

        assert asyncio.run(manager.translate("smile")) == "Gemini 翻訳"
        assert gemini.translate_calls == ["smile"]
        assert openai.translate_calls == []

    def test_errors_surface_without_retry_or_rotation(self, clock):
        gemini = StubProvider("Gemini", [PROMPTS])
        gemini.translation = _fail()
        openai = StubProvider("OpenAI", [PROMPTS])
        manager = _manager([gemini, openai], clock)

        with pytest.raises(VendorHttpError):
            asyncio.run(manager.translate("smile"))

        assert len(gemini.translate_calls) == 1
        assert openai.translate_calls == []
        assert manager.current_provider is gemini
        assert clock.sleeps == []

    def test_no_providers(self, clock):
        with pytest.raises(NoProvidersAvailableError):
            asyncio.run(_manager([], clock).translate("smile"))

    def test_translate_counts_against_rate_limit(self, clock):
        gemini = StubProvider("Gemini", [PROMPTS], max_requests_per_minute=1)
        manager = _manager([gemini], clock)

        asyncio.run(manager.translate("smile"))
        with pytest.raises(RateLimitedError):
            asyncio.run(manager.translate("smile"))

    def test_reserve_keeps_slots_for_generate(self, clock):
        gemini = StubProvider("Gemini", [PROMPTS], max_requests_per_minute=4)
        manager = _manager([gemini], clock)

        asyncio.run(manager.translate("smile", reserve=3))
        with pytest.raises(RateLimitedError):
            asyncio.run(manager.translate("smile", reserve=3))

        assert len(gemini.translate_calls) == 1
        for _ in range(3):
            assert asyncio.run(manager.generate("悲しい")) == PROMPTS


class TestStats:
    def test_stats(self, clock):
        gemini = StubProvider("Gemini", [PROMPTS])
        openai = StubProvider("OpenAI", [PROMPTS])
        manager = _manager([gemini, openai], clock)

        asyncio.run(manager.generate("悲しい"))
        stats = manager.get_stats()

        assert stats["current_provider"] == "Gemini"
        assert stats["total_providers"] == 2
        assert stats["stats"]["Gemini"]["request_count"] == 1
        assert stats["stats"]["Gemini"]["last_request"].startswith("2023-11-14T")
        assert stats["stats"]["OpenAI"] == {"request_count": 0, "last_request": None}

    def test_empty_stats(self, clock):
        assert _manager([], clock).get_stats() == {
            "current_provider": "none",
            "total_providers": 0,
            "stats": {},
        }
