from pydantic import BaseModel, Field
from typing import Dict, List, Optional


# --- Proxy Schemas ---

class GenerateRequest(BaseModel):
    keyword: Optional[str] = None
    model_type: str = Field("sd15", alias="modelType")

    model_config = {"populate_by_name": True, "protected_namespaces": ()}


class GenerateResponse(BaseModel):
    prompts: List[str]


class TranslateRequest(BaseModel):
    text: Optional[str] = None


class TranslateResponse(BaseModel):
    translation: str


# --- Status Schemas ---

class ProviderStats(BaseModel):
    request_count: int = 0
    last_request: Optional[str] = None


class StatsResponse(BaseModel):
    current_provider: str
    total_providers: int
    stats: Dict[str, ProviderStats]
