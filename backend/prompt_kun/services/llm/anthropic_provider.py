from __future__ import annotations

from .base import ProviderClient
from .errors import ResponseShapeError

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(ProviderClient):
    """Anthropic Claude ``messages`` endpoint."""

    name = "Claude"

    def build_request(self, prompt: str) -> tuple[str, dict, dict]:
        headers = {
            "x-api-key": self.config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }
        body = {
            "model": self.config.model or "claude-3-haiku-20240307",
            "max_tokens": 150,
            "messages": [{"role": "user", "content": prompt}],
        }
        return self.config.endpoint, headers, body

    def extract_text(self, data: dict) -> str:
        # Claude may return several content blocks; only text blocks matter.
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise ResponseShapeError(self.name, data)
        texts = [
            b["text"] for b in blocks
            if isinstance(b, dict) and isinstance(b.get("text"), str)
        ]
        if not texts:
            raise ResponseShapeError(self.name, data)
        return "\n".join(texts)
