"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


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
    # INVENTORY BACKEND
    # ===================
    backend_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the inventory backend"
    )
    backend_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Per-request timeout against the backend"
    )
    max_concurrent_requests: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Upper bound on simultaneous backend calls per fan-out"
    )

    # ===================
    # SPREADSHEET LAYOUT
    # ===================
    name_column: str = Field(
        default="Megnevezés",
        description="Column holding the product name"
    )
    natural_key_column: str = Field(
        default="Vonalkód",
        description="Column holding the supplier barcode"
    )
    price_column: str = Field(
        default="Nettó ár (Ft)",
        description="Column holding the net unit price"
    )

    # ===================
    # RECONCILIATION
    # ===================
    duplicate_key_policy: str = Field(
        default="keep_all",
        pattern="^(keep_all|first_wins|last_wins|reject)$",
        description="How rows sharing a barcode within one upload are handled"
    )

    # ===================
    # LINE ITEM DEFAULTS
    # ===================
    order_expected_days: int = Field(
        default=7,
        ge=0,
        le=365,
        description="Days from today for a new order line's expected date"
    )
    delivery_expected_days: int = Field(
        default=2,
        ge=0,
        le=365,
        description="Days from delivery date for a delivery line's expected date"
    )
    delivery_shipping_cost: float = Field(
        default=1,
        ge=0,
        description="Shipping cost stamped on every delivery line"
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
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
