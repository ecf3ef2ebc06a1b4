"""
Configuration for the campaign analyst API.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables
load_dotenv()

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-3-flash-preview"


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    app_name: str = "TortShark Campaign Analyst"
    log_level: str = "INFO"

    # CORS
    cors_origins: str = ""  # comma-separated
    frontend_url: Optional[str] = None

    # Supabase
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("supabase_service_role_key", "supabase_key"),
    )

    # AI gateway (OpenAI-compatible chat completions)
    ai_gateway_url: str = DEFAULT_GATEWAY_URL
    ai_gateway_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ai_gateway_api_key", "lovable_api_key"),
    )
    ai_model: str = DEFAULT_MODEL
    ai_gateway_timeout: float = 120.0

    @property
    def store_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    @property
    def gateway_configured(self) -> bool:
        return bool(self.ai_gateway_api_key)

    def allowed_origins(self) -> list[str]:
        """CORS origins: local dev defaults plus anything configured."""
        origins = [
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
        if self.cors_origins:
            origins.extend(o.strip() for o in self.cors_origins.split(",") if o.strip())
        if self.frontend_url:
            origins.append(self.frontend_url)
        return origins


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
