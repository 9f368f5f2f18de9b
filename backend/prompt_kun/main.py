import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings, validate_api_keys
from .services.llm.factory import build_providers
from .services.llm.provider_manager import ProviderManager
from .services.prompt_service import PromptService

logger = logging.getLogger(__name__)


def build_manager(settings: Settings) -> ProviderManager:
    return ProviderManager(
        build_providers(settings),
        max_retries=settings.retry_count,
        request_timeout=settings.request_timeout,
    )


def create_app(settings: Optional[Settings] = None, manager: Optional[ProviderManager] = None) -> FastAPI:
    settings = settings or get_settings()
    manager = manager or build_manager(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        report = validate_api_keys(settings)
        for warning in report["warnings"]:
            logger.warning(f"[Config] {warning}")
        if report["invalid"]:
            logger.warning(f"[Config] API keys that look malformed: {report['invalid']}")
        if not manager.providers:
            logger.warning("[Config] No LLM provider available. Set GEMINI_API_KEY (or OPENAI/ANTHROPIC keys).")
        yield

    app = FastAPI(title="Prompt Kun", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.manager = manager
    app.state.prompt_service = PromptService(manager, use_provider_glosses=settings.provider_glosses)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": "Invalid request body"})

    from .routers import proxy, ui

    app.include_router(proxy.router, tags=["Proxy"])
    app.include_router(ui.router, tags=["UI"])

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok"}

    return app
