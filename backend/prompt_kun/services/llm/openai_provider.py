from __future__ import annotations

from .base import ProviderClient
from .errors import ResponseShapeError


class OpenAIProvider(ProviderClient):
    """OpenAI-style ``chat/completions`` endpoint."""

    name = "OpenAI"

    def build_request(self, prompt: str) -> tuple[str, dict, dict]:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        body = {
            "model": self.config.model or "gpt-3.5-turbo",
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": 150,
            "temperature": 0.7,
        }
        return self.config.endpoint, headers, body

    def extract_text(self, data: dict) -> str:
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ResponseShapeError(self.name, data) from e
        if not isinstance(text, str):
            raise ResponseShapeError(self.name, data)
        return text
