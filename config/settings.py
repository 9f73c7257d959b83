"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # WORKFLOW WEBHOOKS (n8n)
    # ===================
    n8n_base_url: Optional[str] = Field(
        None,
        description="Base URL of the workflow engine, e.g. https://n8n.example.com"
    )
    n8n_sales_confirmation_webhook: Optional[str] = Field(
        None,
        description="Webhook path fired when a sales order is confirmed"
    )
    n8n_sales_draft_webhook: Optional[str] = Field(
        None,
        description="Webhook path fired when a sales draft is saved"
    )
    n8n_sales_contract_webhook: Optional[str] = Field(
        None,
        description="Webhook path fired when a new sales order needs a contract PDF"
    )
    webhook_timeout_seconds: int = Field(
        default=10,
        ge=1,
        le=60,
        description="Timeout for outbound webhook calls"
    )

    # ===================
    # SALES ALLOCATION
    # ===================
    allocation_surplus_pct: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Extra lots allowed above the requested quantity (percent, floor-rounded)"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        description="Origins allowed by the CORS middleware"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def webhooks_configured(self) -> bool:
        """Check if the workflow engine base URL is set."""
        return bool(self.n8n_base_url)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
