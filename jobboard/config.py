"""
ART Job Board - Configuration Settings

This module handles all application configuration using Pydantic Settings.
Environment variables are loaded from .env file.
"""

from functools import lru_cache
from typing import List, Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===========================================
    # APPLICATION CONFIGURATION
    # ===========================================
    app_name: str = "ART Job Board"
    app_env: str = "development"
    debug: bool = False
    secret_key: str  # Required - must be set in .env
    api_version: str = "v1"
    base_url: str = "http://localhost:8000"  # Base URL for email links

    # ===========================================
    # DATABASE CONFIGURATION
    # ===========================================
    database_url_async: str  # Required - must be set in .env
    database_echo: bool = False
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # ===========================================
    # JWT AUTHENTICATION
    # ===========================================
    jwt_secret_key: str  # Required - must be set in .env
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # ===========================================
    # INITIAL ADMIN (created on startup when set)
    # ===========================================
    admin_email: str = ""
    admin_password: str = ""
    admin_first_name: str = "ART"
    admin_last_name: str = "Admin"

    # ===========================================
    # REDIS / CELERY CONFIGURATION
    # ===========================================
    redis_url: str = "redis://localhost:6379/0"
    celery_timezone: str = "Australia/Brisbane"

    # ===========================================
    # LOYALTY TIER PROGRAM
    # Casual < pro_min <= Pro < elite_min <= Elite
    # ===========================================
    loyalty_pro_min_units: int = 6
    loyalty_elite_min_units: int = 11
    loyalty_pro_points_per_month: int = 5
    loyalty_elite_points_per_month: int = 10
    loyalty_max_protection_months: int = 3
    loyalty_pro_to_elite_points: int = 5  # Elite points per converted Pro month
    loyalty_cashback_amount: float = 100.0
    loyalty_cashback_min_units: int = 5

    # one_shot: next evaluation recomputes and clears the override
    # persistent: override holds until an admin clears it
    loyalty_manual_override_policy: Literal["one_shot", "persistent"] = "one_shot"

    # ===========================================
    # ESTIMATING
    # ===========================================
    default_client_timezone: str = "Australia/Brisbane"
    estimator_rate_per_unit: float = 30.0

    # ===========================================
    # EMAIL CONFIGURATION
    # ===========================================
    email_provider: Optional[str] = None  # sendgrid | mailgun | smtp | mock
    sendgrid_api_key: Optional[str] = None
    mailgun_api_key: Optional[str] = None
    mailgun_domain: Optional[str] = None

    mail_server: str = ""
    mail_port: int = 587
    mail_use_tls: bool = True
    mail_username: str = ""
    mail_password: str = ""
    mail_from: str = "estimates@artjobboard.com.au"
    mail_from_name: str = "ART Estimating"

    @property
    def smtp_host(self) -> str:
        """SMTP host server."""
        return self.mail_server

    @property
    def email_from(self) -> str:
        """Email from address."""
        return self.mail_from or self.mail_username

    # ===========================================
    # CORS SETTINGS
    # ===========================================
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()


# Export settings instance
settings = get_settings()
