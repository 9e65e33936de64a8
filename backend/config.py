"""
Campaign Mail - Configuration Management

Centralized configuration for environment variables, CORS, and deployment settings.
This module ensures:
- No hardcoded secrets
- Provider credentials are checked before any send
- Environment-specific settings (dev/staging/prod)
"""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ==================== ENVIRONMENT ====================
    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (auto-enabled in development)"
    )
    PORT: int = Field(default=3000, description="HTTP port for the API server")

    # ==================== DATABASE ====================
    DATABASE_URL: str = Field(
        default="",
        description="Full SQLAlchemy URL; built from DB_* when empty"
    )
    DB_USER: str = Field(default="wave")
    DB_HOST: str = Field(default="localhost")
    DB_NAME: str = Field(default="email_service")
    DB_PASSWORD: str = Field(default="")
    DB_PORT: int = Field(default=5432)
    DB_POOL_SIZE: int = Field(default=10, description="Base connection pool size")

    # ==================== EMAIL PROVIDER ====================
    EMAIL_PROVIDER: str = Field(
        default="postmark",
        description="Delivery provider: postmark or resend"
    )
    POSTMARK_API_KEY: str = Field(default="", description="Postmark server token")
    POSTMARK_MESSAGE_STREAM: str = Field(default="outbound")
    RESEND_API_KEY: str = Field(default="", description="Resend API key")
    FROM_EMAIL: str = Field(default="", description="Sender address for all sends")
    EMAIL_TIMEOUT_SECONDS: float = Field(default=10.0)

    # ==================== SEEDING ====================
    SEED_ON_STARTUP: bool = Field(
        default=True,
        description="Seed demo data at startup when the templates table is empty"
    )
    SEED_EMAIL_COUNT: int = Field(default=10000)
    SEED_RECIPIENT_COUNT: int = Field(default=1000)

    # ==================== CORS ====================
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed origins"
    )

    # ==================== OBSERVABILITY ====================
    SENTRY_DSN: str = Field(default="", description="Sentry DSN for error tracking")
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )

    # ==================== API ====================
    API_TITLE: str = Field(default="Campaign Mail API")
    API_VERSION: str = Field(default="1.0.0")

    # ==================== COMPUTED PROPERTIES ====================

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def debug_enabled(self) -> bool:
        """Enable debug in development or when explicitly set"""
        return self.DEBUG or self.is_development

    @property
    def cors_origins_list(self) -> List[str]:
        if not self.CORS_ORIGINS or self.CORS_ORIGINS == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def email_api_key(self) -> str:
        """API key of the selected provider."""
        if self.EMAIL_PROVIDER.lower() == "resend":
            return self.RESEND_API_KEY
        return self.POSTMARK_API_KEY

    @property
    def email_api_key_name(self) -> str:
        if self.EMAIL_PROVIDER.lower() == "resend":
            return "RESEND_API_KEY"
        return "POSTMARK_API_KEY"

    def get_database_url(self) -> str:
        """Get the SQLAlchemy URL, forcing the asyncpg driver for PostgreSQL."""
        url = self.DATABASE_URL
        if not url:
            url = (
                f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
                f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            )

        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        return url

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration for production deployment.
        Returns list of validation errors.
        """
        errors = []

        if self.EMAIL_PROVIDER.lower() not in ("postmark", "resend"):
            errors.append(f"EMAIL_PROVIDER '{self.EMAIL_PROVIDER}' is not supported")

        if self.is_production:
            if not self.email_api_key:
                errors.append(f"{self.email_api_key_name} is required")
            if not self.FROM_EMAIL:
                errors.append("FROM_EMAIL is required")
            if "localhost" in self.get_database_url().lower():
                errors.append("Database cannot point to localhost in production")
            if self.DEBUG:
                errors.append("DEBUG should be False in production")

        return errors


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are loaded once and cached for the application lifetime.
    """
    settings = Settings()

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Email provider: {settings.EMAIL_PROVIDER}")

    if settings.is_production:
        errors = settings.validate_production_config()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ValueError(f"Production configuration invalid: {', '.join(errors)}")

    return settings


# ==================== CORS CONFIGURATION ====================

def get_cors_config(settings: Settings) -> dict:
    """Build the keyword arguments for CORSMiddleware."""
    origins = settings.cors_origins_list
    return {
        "allow_origins": origins,
        # Browsers reject credentials with a wildcard origin
        "allow_credentials": origins != ["*"],
        "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        "allow_headers": ["Content-Type", "Accept", "Origin", "X-Request-ID"],
        "expose_headers": ["X-Request-ID", "X-Process-Time"],
        "max_age": 600,
    }


# ==================== ENVIRONMENT VALIDATION ====================

def validate_environment(settings: Settings) -> dict:
    """
    Validate environment variables.

    Returns a status dict with validation results.
    """
    status = {
        "valid": True,
        "environment": settings.ENVIRONMENT,
        "errors": [],
        "warnings": [],
        "variables": {}
    }

    required_vars = [
        (settings.email_api_key_name, settings.email_api_key, "Sending disabled"),
        ("FROM_EMAIL", settings.FROM_EMAIL, "Sending disabled"),
    ]
    for name, value, warning in required_vars:
        if value:
            status["variables"][name] = "✓ Set"
        else:
            status["variables"][name] = "✗ Not set"
            status["warnings"].append(f"{name} is not set - {warning}")

    if settings.SENTRY_DSN:
        status["variables"]["SENTRY_DSN"] = "✓ Set"
    else:
        status["variables"]["SENTRY_DSN"] = "⚠ Not set"
        status["warnings"].append("Error tracking disabled")

    errors = settings.validate_production_config()
    if errors:
        status["errors"].extend(errors)
        status["valid"] = False

    return status
