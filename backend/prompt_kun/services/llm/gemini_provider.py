from __future__ import annotations

from .base import ProviderClient
from .errors import ResponseShapeError


class GeminiProvider(ProviderClient):
    """Google Gemini ``generateContent`` (AI Studio, API key in the query string)."""

    name = "Gemini"

    def build_request(self, prompt: str) -> tuple[str, dict, dict]:
        url = f"{self.config.endpoint}?key={self.config.api_key}"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.2,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": 1000,
            },
        }
        return url, {"Content-Type": "application/json"}, body

    def extract_text(self, data: dict) -> str:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ResponseShapeError(self.name, data) from e
        if not isinstance(text, str):
            raise ResponseShapeError(self.name, data)
        return text
