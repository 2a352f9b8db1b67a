"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "RunPlan Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://runplan@localhost:5432/runplan"
    database_auto_create: bool = False

    # Identity (Firebase Admin service account, base64-encoded JSON)
    firebase_credentials_base64: str | None = None
    firebase_project_id: str | None = None

    # Generation backends, tried in order. Format: "<backend>:<model>".
    generation_models: List[str] = [
        "vertex-rest:gemini-1.5-flash-002",
        "gemini-sdk:gemini-1.5-flash",
        "openai:gpt-4o-mini",
    ]
    fallback_policy: Literal["fail_fast", "continue"] = "fail_fast"
    provider_timeout_seconds: float = 25.0
    generation_max_output_tokens: int = 8192
    generation_temperature: float = 0.7
    generation_top_p: float = 0.95
    generation_top_k: int = 40
    vertex_project: str | None = None
    vertex_region: str = "us-central1"
    vertex_credentials_base64: str | None = None
    gemini_api_key: str | None = None
    openai_api_key: str | None = None

    plan_language: str = "English"
    strict_plan_validation: bool = True

    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "runplan"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
