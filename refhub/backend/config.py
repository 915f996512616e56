"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # AI gateway (OpenAI-compatible chat completions)
    ai_gateway_api_key: str | None = None
    ai_gateway_base_url: str = "https://ai.gateway.lovable.dev/v1"
    ai_model: str = "google/gemini-3-flash-preview"

    # Database (required - must be set in .env or environment)
    database_url: str

    # Object storage (Supabase storage REST API)
    supabase_url: str = "http://localhost:54321"
    supabase_service_role_key: str = ""
    storage_bucket: str = "pdfs"
    http_timeout: float = 30.0

    # Access tokens issued by the identity provider
    jwt_secret: str = ""
    jwt_audience: str = "authenticated"

    # Admin export
    export_institution: str = "Université Lédéa Bernard OUEDRAOGO"

    cors_origins: list[str] = ["*"]

    # Debug flags
    sql_debug: bool = False
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the backend directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
