"""Error kinds raised by provider clients and the provider manager."""

from __future__ import annotations

from typing import Optional


class PromptGenerationError(Exception):
    """Base class for every provider / manager failure."""


class VendorHttpError(PromptGenerationError):
    """The vendor replied with a non-2xx status."""

    def __init__(self, provider: str, status: int, body: str = ""):
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(f"{provider} API error: HTTP {status} {body[:200]}".rstrip())


class ResponseShapeError(PromptGenerationError):
    """The vendor replied 2xx but the JSON did not have the expected shape."""

    def __init__(self, provider: str, payload: object = None):
        self.provider = provider
        self.payload = payload
        super().__init__(f"{provider} API returned an unexpected response shape")


class ProviderNetworkError(PromptGenerationError):
    """The request never produced an HTTP response (DNS, connect, read...)."""

    def __init__(self, provider: str, detail: str = ""):
        self.provider = provider
        super().__init__(f"{provider} network error: {detail}".rstrip(": "))


class EmptyGenerationError(PromptGenerationError):
    """The vendor replied but no usable candidate survived parsing."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} returned no usable prompts")


class RateLimitedError(PromptGenerationError):
    """Local per-minute cap reached; the vendor was not called."""

    def __init__(self, provider: str, limit: int):
        self.provider = provider
        self.limit = limit
        super().__init__(f"{provider} rate limit reached ({limit} requests/minute)")


class ProviderTimeoutError(PromptGenerationError, TimeoutError):
    """The vendor call did not finish within the configured deadline."""

    def __init__(self, provider: str, timeout: float):
        self.provider = provider
        self.timeout = timeout
        super().__init__(f"{provider} request timeout after {timeout:g}s")


class AllProvidersFailedError(PromptGenerationError):
    """Every provider was tried and none succeeded."""

    def __init__(self, last_error: Optional[BaseException] = None, message: str | None = None):
        self.last_error = last_error
        if message is None:
            detail = str(last_error) if last_error is not None else "unknown error"
            message = f"All providers failed: {detail}"
        super().__init__(message)


class NoProvidersAvailableError(AllProvidersFailedError):
    """No provider is enabled; raised before any network call."""

    def __init__(self):
        super().__init__(None, "no providers available")
