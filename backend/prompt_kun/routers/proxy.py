import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..schemas import GenerateRequest, GenerateResponse, StatsResponse, TranslateRequest, TranslateResponse
from ..services.llm.errors import NoProvidersAvailableError, PromptGenerationError
from ..services.llm.provider_manager import ProviderManager
from ..services.translation_service import PROXY_TRANSLATION_TEMPLATE
from .deps import get_manager

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_providers(manager: ProviderManager) -> None:
    if not manager.providers:
        raise HTTPException(status_code=500, detail="No LLM provider API key configured on the server")


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    request: Optional[GenerateRequest] = None,
    manager: ProviderManager = Depends(get_manager),
):
    """Keyword -> prompt list, with the vendor keys kept server-side."""
    keyword = (request.keyword if request else None) or ""
    if not keyword.strip():
        raise HTTPException(status_code=400, detail="Keyword is required")
    _require_providers(manager)

    logger.info(f"[Proxy] generate keyword={keyword.strip()!r} model_type={request.model_type}")
    try:
        prompts = await manager.generate(keyword.strip(), request.model_type)
    except NoProvidersAvailableError:
        raise HTTPException(status_code=500, detail="No LLM provider API key configured on the server")
    except PromptGenerationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return GenerateResponse(prompts=prompts)


@router.post("/translate", response_model=TranslateResponse)
async def translate(
    request: Optional[TranslateRequest] = None,
    manager: ProviderManager = Depends(get_manager),
):
    text = (request.text if request else None) or ""
    if not text.strip():
        raise HTTPException(status_code=400, detail="Text is required")
    _require_providers(manager)

    try:
        translation = await manager.translate(PROXY_TRANSLATION_TEMPLATE.format(text=text))
    except PromptGenerationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return TranslateResponse(translation=translation)


@router.get("/api/stats", response_model=StatsResponse)
async def stats(manager: ProviderManager = Depends(get_manager)):
    """Per-provider request counts for the trailing minute."""
    return manager.get_stats()
