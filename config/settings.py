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
        extra="ignore"
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
        description="Supabase service role key (preferred over the anon key when set)"
    )

    # ===================
    # SHOPIFY
    # ===================
    shopify_api_version: str = Field(
        default="2023-10",
        description="Shopify Admin API version"
    )
    shopify_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Timeout for Shopify HTTP requests"
    )

    # ===================
    # ORDER CARDS
    # ===================
    add_on_label: str = Field(
        default="Add-Ons",
        min_length=1,
        description="Product label marking a line item as an add-on"
    )
    order_code_prefix: str = Field(
        default="WF",
        description="Tenant tag prefixed to short order display codes"
    )
    order_code_digits: int = Field(
        default=6,
        ge=3,
        le=12,
        description="Trailing digits of a long order id kept in the display code"
    )
    order_code_min_length: int = Field(
        default=10,
        ge=4,
        le=30,
        description="Digit count from which a raw order id counts as long"
    )
    classification_workers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Concurrent product label lookups per pipeline run"
    )

    # ===================
    # CARD STATE SYNC
    # ===================
    notes_debounce_seconds: float = Field(
        default=1.0,
        ge=0,
        le=30,
        description="Quiet period before a notes edit is persisted"
    )
    reconciliation_interval_seconds: float = Field(
        default=3.0,
        gt=0,
        le=300,
        description="Poll interval for remote card state changes"
    )
    reconciliation_overlap_seconds: float = Field(
        default=10.0,
        ge=0,
        le=600,
        description="Polls re-read changes this far behind the cursor to catch late commits"
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

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


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
