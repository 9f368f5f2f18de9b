from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import Awaitable, Callable, Deque, Dict, List, Optional

from .base import STYLE_SD15, ProviderClient
from .errors import (
    AllProvidersFailedError,
    NoProvidersAvailableError,
    ProviderTimeoutError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

RATE_WINDOW_SECONDS = 60.0
BACKOFF_BASE_SECONDS = 1.0


class ProviderManager:
    """Rotating fallback over a fixed list of providers.

    Each provider gets ``max_retries`` retries with exponential backoff
    (2s, 4s, ...) before the cursor moves on to the next one. The cursor is
    kept between calls, so a provider that succeeded is tried first next time.
    Every attempt that reaches the network is recorded in a per-provider
    sliding window, which enforces ``max_requests_per_minute`` locally.
    """

    def __init__(
        self,
        providers: List[ProviderClient],
        *,
        max_retries: int = 2,
        request_timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._providers = list(providers)
        self._current_index = 0
        self.max_retries = max_retries
        self.request_timeout = request_timeout
        self._clock = clock
        self._sleep = sleep
        self._request_times: Dict[str, Deque[float]] = {p.name: deque() for p in self._providers}
        self._last_request: Dict[str, float] = {}
        logger.info(f"[LLM] Provider manager ready with {[p.name for p in self._providers]}")

    @property
    def providers(self) -> List[ProviderClient]:
        return list(self._providers)

    @property
    def current_provider(self) -> Optional[ProviderClient]:
        if not self._providers:
            return None
        return self._providers[self._current_index]

    async def generate(self, keyword: str, style_variant: str = STYLE_SD15) -> List[str]:
        """Try every provider once, starting at the cursor, until one succeeds."""
        if not self._providers:
            raise NoProvidersAvailableError()

        last_error: Optional[Exception] = None
        n = len(self._providers)

        for _ in range(n):
            provider = self._providers[self._current_index]
            try:
                logger.info(f"[LLM] Trying {provider.name} for keyword {keyword!r}")
                prompts = await self._call_with_retry(provider, keyword, style_variant)
                logger.info(f"[LLM] Success with {provider.name} ({len(prompts)} prompts)")
                return prompts
            except Exception as e:
                last_error = e
                logger.warning(
                    f"[LLM] {provider.name} exhausted: {type(e).__name__}: {str(e)[:200]}"
                )
                self._current_index = (self._current_index + 1) % n

        raise AllProvidersFailedError(last_error)

    async def translate(self, text: str, reserve: int = 0) -> str:
        """Single call to the current provider: no retry, no rotation.

        ``reserve`` leaves that many slots of the rate window untouched, so
        low-priority callers cannot starve ``generate``.
        """
        provider = self.current_provider
        if provider is None:
            raise NoProvidersAvailableError()

        logger.info(f"[LLM] Translating with {provider.name}")
        self._check_rate_limit(provider, reserve)
        self._record_request(provider)
        try:
            return await self._with_timeout(provider, provider.translate(text))
        except Exception as e:
            logger.warning(f"[LLM] {provider.name} translation error: {type(e).__name__}: {str(e)[:200]}")
            raise

    async def _call_with_retry(self, provider: ProviderClient, keyword: str, style_variant: str) -> List[str]:
        retry = 0
        while True:
            try:
                # A locally rate-limited provider is skipped, not retried.
                self._check_rate_limit(provider)
                self._record_request(provider)
                return await self._with_timeout(provider, provider.generate(keyword, style_variant))
            except RateLimitedError:
                raise
            except Exception as e:
                retry += 1
                if retry > self.max_retries:
                    raise
                delay = (2 ** retry) * BACKOFF_BASE_SECONDS
                logger.info(
                    f"[LLM] {provider.name} attempt {retry}/{self.max_retries + 1} failed "
                    f"({type(e).__name__}); retrying in {delay:g}s"
                )
                await self._sleep(delay)

    async def _with_timeout(self, provider: ProviderClient, call: Awaitable):
        try:
            return await asyncio.wait_for(call, timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(provider.name, self.request_timeout) from e

    def _window(self, provider: ProviderClient) -> Deque[float]:
        window = self._request_times.setdefault(provider.name, deque())
        cutoff = self._clock() - RATE_WINDOW_SECONDS
        while window and window[0] <= cutoff:
            window.popleft()
        return window

    def _check_rate_limit(self, provider: ProviderClient, reserve: int = 0) -> None:
        limit = provider.config.max_requests_per_minute
        used = len(self._window(provider))
        if used >= limit:
            logger.warning(f"[LLM] {provider.name} hit local rate limit ({limit}/min)")
            raise RateLimitedError(provider.name, limit)
        if used >= limit - reserve:
            logger.info(f"[LLM] {provider.name} holding {reserve} request(s) in reserve ({used}/{limit} used)")
            raise RateLimitedError(provider.name, limit)

    def _record_request(self, provider: ProviderClient) -> None:
        now = self._clock()
        self._request_times.setdefault(provider.name, deque()).append(now)
        self._last_request[provider.name] = now

    def get_stats(self) -> dict:
        stats = {}
        for p in self._providers:
            last = self._last_request.get(p.name)
            stats[p.name] = {
                "request_count": len(self._window(p)),
                "last_request": (
                    datetime.fromtimestamp(last, tz=timezone.utc).isoformat() if last is not None else None
                ),
            }
        current = self.current_provider
        return {
            "current_provider": current.name if current is not None else "none",
            "total_providers": len(self._providers),
            "stats": stats,
        }
