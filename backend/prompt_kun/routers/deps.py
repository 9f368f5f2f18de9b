from fastapi import Request

from ..services.llm.provider_manager import ProviderManager
from ..services.prompt_service import PromptService


def get_manager(request: Request) -> ProviderManager:
    return request.app.state.manager


def get_prompt_service(request: Request) -> PromptService:
    return request.app.state.prompt_service
