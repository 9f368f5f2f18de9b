from __future__ import annotations

import abc
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from .errors import (
    EmptyGenerationError,
    ProviderNetworkError,
    ResponseShapeError,
    VendorHttpError,
)

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 10
HTTP_TIMEOUT = 60  # seconds; the manager enforces the real deadline

STYLE_SD15 = "sd15"
STYLE_ILLUSTRIOUS = "illustrious"

INSTRUCTION_TEMPLATES = {
    STYLE_SD15: (
        "Convert this Japanese keyword into 3-8 English words or short phrases "
        "for a Stable Diffusion 1.5 prompt.\n\n"
        "Keyword: {keyword}\n\n"
        "Requirements:\n"
        "- Output 3-8 concise words or short phrases\n"
        "- Natural, photographic vocabulary\n"
        "- Separate by commas or newlines\n"
        "- No explanations\n\n"
        "Example:\n"
        "頭 → head, portrait, face, hair, expression, closeup\n"
        "悲しい → sad, crying, melancholy, tears, depressed, sorrow"
    ),
    STYLE_ILLUSTRIOUS: (
        "Convert this Japanese keyword into 3-8 Danbooru-style tags "
        "for an Illustrious (anime) Stable Diffusion model.\n\n"
        "Keyword: {keyword}\n\n"
        "Requirements:\n"
        "- Output 3-8 lowercase tags, words joined with underscores\n"
        "- Prefer tags that exist on Danbooru\n"
        "- Separate by commas or newlines\n"
        "- No explanations\n\n"
        "Example:\n"
        "可愛い子 → cute, 1girl, smile, looking_at_viewer, blush\n"
        "悲しい → sad, crying, tears, frown, downcast_eyes"
    ),
}

EXAMPLE_MARKERS = ("Example", "Keyword", "キーワード", "例:")

_ARROW_TAIL = re.compile(r"→.*$", re.MULTILINE)
_SPLIT = re.compile(r"[\n,]+")
_LIST_PREFIX = re.compile(r"^(?:[-*・•]+|\d+[.)])\s*")
_QUOTES = "\"'“”「」"


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    endpoint: str
    api_key: str
    model: Optional[str] = None
    max_requests_per_minute: int = 60
    enabled: bool = True


def build_instruction(keyword: str, style_variant: str = STYLE_SD15) -> str:
    template = INSTRUCTION_TEMPLATES.get(style_variant, INSTRUCTION_TEMPLATES[STYLE_SD15])
    return template.format(keyword=keyword)


def split_candidates(text: str) -> list[str]:
    """Split raw completion text into prompt candidates.

    Example echoes after an arrow are removed, then the text is split on
    newlines and commas. List bullets, numbering and quotes are stripped,
    lines mentioning the example markers are dropped and duplicates are
    removed keeping the first one. At most MAX_CANDIDATES are returned.
    """
    cleaned = _ARROW_TAIL.sub("", text or "")
    candidates: list[str] = []
    seen: set[str] = set()
    for piece in _SPLIT.split(cleaned):
        candidate = _LIST_PREFIX.sub("", piece.strip()).strip().strip(_QUOTES).strip()
        if not candidate:
            continue
        if any(marker in candidate for marker in EXAMPLE_MARKERS):
            continue
        if candidate in seen:
            continue
        seen.add(candidate)
        candidates.append(candidate)
        if len(candidates) >= MAX_CANDIDATES:
            break
    return candidates


class ProviderClient(abc.ABC):
    """One vendor's completion endpoint.

    Subclasses build the vendor request body and know where the completion
    text lives in the vendor reply. Everything else (HTTP, error mapping,
    candidate splitting) is shared.
    """

    name: str = "base"

    def __init__(self, config: ProviderConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    @abc.abstractmethod
    def build_request(self, prompt: str) -> tuple[str, dict, dict]:
        """Return ``(url, headers, json_body)`` for one completion call."""
        ...

    @abc.abstractmethod
    def extract_text(self, data: dict) -> str:
        """Pull the completion text out of a decoded vendor reply."""
        ...

    def parse_response(self, data: dict) -> list[str]:
        prompts = split_candidates(self.extract_text(data))
        if not prompts:
            raise EmptyGenerationError(self.name)
        return prompts

    async def generate(self, keyword: str, style_variant: str = STYLE_SD15) -> list[str]:
        data = await self._complete(build_instruction(keyword, style_variant))
        return self.parse_response(data)

    async def translate(self, text: str) -> str:
        data = await self._complete(text)
        translated = self.extract_text(data).strip()
        if not translated:
            raise EmptyGenerationError(self.name)
        return translated

    async def _complete(self, prompt: str) -> dict:
        url, headers, body = self.build_request(prompt)
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, transport=self._transport) as client:
                resp = await client.post(url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise ProviderNetworkError(self.name, f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            raise VendorHttpError(self.name, resp.status_code, resp.text[:500])

        try:
            data = resp.json()
        except json.JSONDecodeError as e:
            raise ResponseShapeError(self.name, resp.text[:500]) from e
        if not isinstance(data, dict):
            raise ResponseShapeError(self.name, data)
        return data
