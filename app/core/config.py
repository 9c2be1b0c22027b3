"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, payment credentials, secrets, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="owlpole",
        description="MongoDB database name"
    )

    # Razorpay
    RAZORPAY_KEY_ID: Optional[str] = Field(
        default=None,
        description="Razorpay API key id"
    )
    RAZORPAY_KEY_SECRET: Optional[str] = Field(
        default=None,
        description="Razorpay API key secret"
    )
    RAZORPAY_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Shared secret used to sign Razorpay webhooks"
    )
    RAZORPAY_BASE_URL: str = Field(
        default="https://api.razorpay.com/v1",
        description="Razorpay REST API base URL"
    )
    RAZORPAY_TIMEOUT: float = Field(
        default=20.0,
        description="Razorpay request timeout in seconds"
    )
    PAYMENT_CURRENCY: str = Field(
        default="USD",
        description="Currency used for every provider order"
    )

    # Onboarding
    ONBOARDING_SESSION_TTL_MINUTES: int = Field(
        default=30,
        description="Minutes an unpaid onboarding session is kept"
    )
    ACTIVATION_BONUS_CREDITS: int = Field(
        default=60,
        description="Credits granted to a creator when their twin is activated"
    )
    UPLOAD_DIR: str = Field(
        default="uploads",
        description="Directory where onboarding assets are stored"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # Security
    SECRET_KEY: str = Field(
        default="change-me-in-production",
        description="Secret used to sign access tokens"
    )
    JWT_EXPIRE_DAYS: int = Field(
        default=7,
        description="Access token lifetime in days"
    )
    PASSWORD_RESET_EXPIRE_MINUTES: int = Field(
        default=10,
        description="Minutes a password reset token stays valid"
    )
    EXPOSE_RESET_TOKEN: bool = Field(
        default=False,
        description="Return the reset token in the forgot-password response (no mailer configured)"
    )

    @validator("RAZORPAY_WEBHOOK_SECRET")
    def validate_webhook_secret(cls, v, values):
        """Ensure the webhook secret is set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("RAZORPAY_WEBHOOK_SECRET is required in production environment")
        return v

    @validator("SECRET_KEY")
    def validate_secret_key(cls, v, values):
        """Ensure secret key is changed in production."""
        if values.get("ENVIRONMENT") == "production" and v == "change-me-in-production":
            raise ValueError("SECRET_KEY must be changed in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def razorpay_configured(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if settings.ONBOARDING_SESSION_TTL_MINUTES <= 0:
        errors.append("ONBOARDING_SESSION_TTL_MINUTES must be positive")

    # Production-specific validations
    if settings.is_production:
        if not settings.razorpay_configured:
            errors.append("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required in production")
        if not settings.RAZORPAY_WEBHOOK_SECRET:
            errors.append("RAZORPAY_WEBHOOK_SECRET is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
