from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List

from .llm.base import STYLE_ILLUSTRIOUS, STYLE_SD15
from .llm.provider_manager import ProviderManager
from .translation_service import annotate

logger = logging.getLogger(__name__)

STYLE_VARIANTS = {
    STYLE_SD15: "SD 1.5",
    STYLE_ILLUSTRIOUS: "Illustrious",
}

MSG_EMPTY_KEYWORD = "キーワードを入力してください"
MSG_TIMEOUT = "応答時間が長すぎます。少し時間をおいて再試行してください。"
MSG_RATE_LIMIT = "使用制限に達しました。しばらくお待ちください。"
MSG_NETWORK = "通信エラーが発生しました。インターネット接続を確認してください。"
MSG_SYSTEM = "システムに不具合が起きています。時間をおいてお試しください。"
MSG_SERVER = "サーバーエラーが発生しました。しばらくお待ちください。"
MSG_GENERIC = "プロンプト生成に失敗しました。もう一度お試しください。"

# First match wins.
_ERROR_MESSAGE_RULES = (
    (("timeout", "タイムアウト"), MSG_TIMEOUT),
    (("rate limit", "制限"), MSG_RATE_LIMIT),
    (("network", "fetch"), MSG_NETWORK),
    (("all providers",), MSG_SYSTEM),
    (("api", "server"), MSG_SERVER),
)


class UserFacingError(Exception):
    """Carries a message that is safe to show on the page as-is."""


@dataclass
class PromptCard:
    prompt: str
    gloss: str


def error_message_for(exc: BaseException) -> str:
    text = str(exc).lower()
    for needles, message in _ERROR_MESSAGE_RULES:
        if any(n in text for n in needles):
            return message
    return MSG_GENERIC


class PromptService:
    """Keyword in, annotated prompt cards out."""

    def __init__(self, manager: ProviderManager, use_provider_glosses: bool = False):
        self.manager = manager
        self.use_provider_glosses = use_provider_glosses

    async def generate_cards(self, keyword: str, style_variant: str = STYLE_SD15) -> List[PromptCard]:
        keyword = (keyword or "").strip()
        if not keyword:
            raise UserFacingError(MSG_EMPTY_KEYWORD)
        if style_variant not in STYLE_VARIANTS:
            style_variant = STYLE_SD15

        try:
            prompts = await self.manager.generate(keyword, style_variant)
        except Exception as e:
            logger.error(f"[Prompt] Generation failed for {keyword!r}: {type(e).__name__}: {e}")
            raise UserFacingError(error_message_for(e)) from e

        gloss_manager = self.manager if self.use_provider_glosses else None
        # a full retry budget stays free for the next keyword
        reserve = self.manager.max_retries + 1
        glosses = await asyncio.gather(*(annotate(p, gloss_manager, reserve) for p in prompts))
        return [PromptCard(prompt=p, gloss=g) for p, g in zip(prompts, glosses)]
