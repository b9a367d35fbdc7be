"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with defaults for development."""

    # Redis
    # Shared by every process instance: circuit-breaker state lives here
    redis_url: str = "redis://localhost:6379"
    redis_pool_max_connections: int = 20
    redis_socket_timeout: int = 5  # Socket timeout in seconds (connect and read/write)

    # Razorpay credentials, one merchant account per mandate type.
    # Read through the secret store as <namespace>_<key>, e.g. RAZORPAY_UPI_KEY_ID
    razorpay_upi_key_id: str = ""
    razorpay_upi_key_secret: str = ""
    razorpay_emandate_key_id: str = ""
    razorpay_emandate_key_secret: str = ""
    razorpay_webhook_secret: str = ""

    # Razorpay transport
    razorpay_base_url: str = "https://api.razorpay.com/v1"
    razorpay_timeout_seconds: float = 30.0

    # Retry defaults (overridable per call)
    razorpay_max_retries: int = 3
    razorpay_retry_delay_ms: int = 1000
    razorpay_backoff_multiplier: float = 2.0

    # Distributed circuit breaker
    razorpay_failure_threshold: int = 3  # Qualifying failures before the circuit opens
    razorpay_failure_ttl_seconds: int = 15 * 60  # Failure window, set on first failure
    # False couples every mandate type to a single "razorpay" breaker key
    razorpay_breaker_per_mandate: bool = True

    # Environment
    environment: str = "development"
    debug: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def validate_production_secrets(self) -> list[str]:
        """
        Validate that secrets are properly configured for production.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        if self.environment == "production":
            if self.debug:
                errors.append("DEBUG must be False in production")

            has_account = (
                self.razorpay_upi_key_id or self.razorpay_emandate_key_id
            )
            if has_account and not self.razorpay_webhook_secret:
                errors.append(
                    "RAZORPAY_WEBHOOK_SECRET must be set when using Razorpay"
                )

            if self.razorpay_failure_threshold < 1:
                errors.append("RAZORPAY_FAILURE_THRESHOLD must be at least 1")

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()

# Direct access to commonly used settings
REDIS_URL = settings.redis_url
