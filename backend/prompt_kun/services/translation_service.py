from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional

from .gloss_dictionary import COMPOUND_GLOSSES, HEURISTIC_GLOSSES, WORD_GLOSSES

if TYPE_CHECKING:
    from .llm.provider_manager import ProviderManager

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w-]")

TRANSLATION_TEMPLATE = (
    "以下の英語プロンプトを自然な日本語に翻訳してください（翻訳のみ、説明不要）:\n"
    "{prompt}\n\n"
    "※特に以下の未翻訳語に注意: {words}"
)

PROXY_TRANSLATION_TEMPLATE = (
    "以下の英語のStable Diffusionプロンプトを自然な日本語に翻訳してください。"
    "技術的な用語は適切な日本語に置き換えてください。\n\n"
    "英語: \"{text}\"\n\n"
    "日本語:"
)


def _lookup_word(token: str) -> Optional[str]:
    word = _NON_WORD.sub("", token)
    if word in WORD_GLOSSES:
        return WORD_GLOSSES[word]
    return WORD_GLOSSES.get(word.replace("-", ""))


def dictionary_gloss(english: str) -> tuple[Optional[str], list[str]]:
    """Gloss from the lookup tables alone.

    Returns ``(gloss, untranslated_words)``. ``gloss`` is None when not a
    single word could be looked up.
    """
    text = (english or "").strip().lower()
    if not text:
        return None, []
    if text in COMPOUND_GLOSSES:
        return COMPOUND_GLOSSES[text], []

    parts: list[str] = []
    untranslated: list[str] = []
    for token in text.split():
        gloss = _lookup_word(token)
        if gloss is None:
            cleaned = _NON_WORD.sub("", token) or token
            parts.append(cleaned)
            untranslated.append(cleaned)
        else:
            parts.append(gloss)

    if len(untranslated) == len(parts):
        return None, untranslated
    return " ".join(parts), untranslated


def heuristic_gloss(english: str) -> str:
    """First matching substring gloss, else the text in parentheses. Matching ignores case."""
    text = (english or "").strip()
    lowered = text.lower()
    for needle, gloss in HEURISTIC_GLOSSES:
        if needle in lowered:
            return gloss
    return f"({text})"


def annotate_offline(english: str) -> str:
    """Deterministic gloss: compound table, word table, then heuristics."""
    gloss, _ = dictionary_gloss(english)
    if gloss is not None:
        return gloss
    return heuristic_gloss(english)


async def annotate(english: str, manager: "ProviderManager | None" = None, reserve: int = 0) -> str:
    """Gloss an English prompt for display. Never raises.

    When the tables know none of the words and a manager is available, the
    current provider is asked once for a translation. Any failure there falls
    back to the offline heuristics. ``reserve`` is handed to
    ``ProviderManager.translate`` to keep rate-window slots for generation.
    """
    gloss, untranslated = dictionary_gloss(english)
    if gloss is not None:
        return gloss

    if manager is not None and untranslated:
        request = TRANSLATION_TEMPLATE.format(prompt=english.strip(), words=", ".join(untranslated))
        try:
            translated = (await manager.translate(request, reserve=reserve)).strip()
            if translated:
                return translated
        except Exception as e:
            logger.warning(f"[Gloss] Provider translation failed, using dictionary fallback: {type(e).__name__}: {str(e)[:200]}")

    return heuristic_gloss(english)
