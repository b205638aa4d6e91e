"""Application configuration management using Pydantic Settings."""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="marketplace-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:4321",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_jwt_secret: str = Field(..., description="Supabase JWT secret for HS256 token verification")
    supabase_jwt_audience: str = Field(default="authenticated", description="Expected JWT audience claim")
    jwt_leeway_seconds: int = Field(default=10, ge=0, description="Clock skew tolerated when checking token expiry")

    # Stripe
    stripe_secret_key: str = Field(default="", description="Stripe secret API key")
    stripe_webhook_secret: str = Field(default="", description="Stripe webhook signing secret")
    stripe_publishable_key: str = Field(default="", description="Stripe publishable key (for frontend)")

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key for sending emails")
    email_from_address: str = Field(
        default="Marketplace <noreply@example.com>",
        description="From address for transactional emails",
    )

    # Frontend
    frontend_url: str = Field(
        default="http://localhost:4321",
        description="Frontend application URL for email links",
    )

    # Commerce
    store_currency: str = Field(default="USD", description="Currency of catalog prices and new orders")
    tax_rate: Decimal = Field(default=Decimal("0.08"), ge=0, lt=1, description="Sales tax rate applied to order subtotals")
    default_locale: str = Field(default="en", description="Locale used when a request does not specify one")
    orders_page_size: int = Field(default=20, ge=1, description="Default page size for order listings")
    orders_max_page_size: int = Field(default=100, ge=1, description="Upper bound for order listing page size")

    # Observability
    slow_request_threshold_ms: int = Field(default=1000, description="Requests slower than this are logged as warnings")

    @field_validator("default_locale")
    @classmethod
    def validate_default_locale(cls, value: str) -> str:
        """Restrict the default locale to the supported set."""
        if value not in ("en", "es"):
            raise ValueError("default_locale must be 'en' or 'es'")
        return value

    @field_validator("store_currency")
    @classmethod
    def validate_store_currency(cls, value: str) -> str:
        value = value.upper()
        if value not in ("USD", "EUR", "GBP", "MXN", "CAD", "AUD"):
            raise ValueError("store_currency must be a supported ISO 4217 code")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_stripe_test_mode(self) -> bool:
        """Check if using Stripe test keys."""
        return self.stripe_secret_key.startswith("sk_test_")


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process; tests call ``cache_clear()`` after changing the environment."""
    return Settings()
