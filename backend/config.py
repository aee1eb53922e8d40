"""
Configuration management for the Checkout Demo.

Loads settings from .env via pydantic-settings.

Notes:
    - The secret key never leaves the server; only the publishable key is
      exposed through GET /config.
    - validate_production_settings() refuses to start in production without
      provider credentials and a webhook secret.
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Payment provider ────────────────────────────────────────────
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_api_version: str = "2018-02-06"
    stripe_api_base: str = "https://api.stripe.com"
    stripe_webhook_secret: str = ""
    webhook_tolerance_seconds: int = 300

    # ── Store ───────────────────────────────────────────────────────
    currency: str = "gbp"
    country: str = "GB"
    statement_descriptor: str = "Stripe Payments Demo"

    # ── Messaging provider ──────────────────────────────────────────
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = "+447481347036"
    twilio_api_base: str = "https://api.twilio.com/2010-04-01"
    proxy: Optional[str] = None  # outbound proxy for the messaging transport

    # ── HTTP ────────────────────────────────────────────────────────
    http_timeout_seconds: float = 15.0

    # ── Checkout client ─────────────────────────────────────────────
    api_base_url: str = "http://localhost:8000"
    poll_timeout_seconds: float = 30.0
    poll_interval_seconds: float = 0.5

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:8000,http://127.0.0.1:8000,http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if not self.stripe_secret_key or not self.stripe_publishable_key:
                raise ValueError(
                    "STRIPE_SECRET_KEY and STRIPE_PUBLISHABLE_KEY must be set in production."
                )
            if not self.stripe_webhook_secret:
                raise ValueError(
                    "STRIPE_WEBHOOK_SECRET must be set in production. "
                    "Webhooks drive order status updates after redirect flows."
                )
            logger.info("✅ Production settings validated")
        else:
            warnings = []
            if not self.stripe_secret_key:
                warnings.append("STRIPE_SECRET_KEY not set (provider calls will fail)")
            if not self.stripe_webhook_secret:
                warnings.append("STRIPE_WEBHOOK_SECRET not set (webhooks will be rejected)")
            if not self.twilio_account_sid or not self.twilio_auth_token:
                warnings.append("Twilio credentials not set (SMS confirmations disabled)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
