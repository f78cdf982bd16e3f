"""
Application Settings

Centralized configuration for the backend.
All settings are loaded from environment variables (optionally via .env).
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"

load_dotenv(dotenv_path=ENV_FILE)


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on bad input."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_optional_env(key: str) -> Optional[str]:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    return value.strip()


class Settings:
    """
    Runtime settings for the application.

    To add a new setting:
    1. Add it here as a class property
    2. Load it from an environment variable with a sane default
    3. Import `settings` where you need it
    """

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./coursereview.db")

    # Session tokens (issued for the HTTP surface only)
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = get_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24)

    # Registration
    ALLOWED_EMAIL_DOMAIN: Optional[str] = get_optional_env("ALLOWED_EMAIL_DOMAIN")
    USERNAME_MAX_ATTEMPTS: int = get_int_env("USERNAME_MAX_ATTEMPTS", 3)
    VERIFICATION_TOKEN_TTL_HOURS: int = get_int_env("VERIFICATION_TOKEN_TTL_HOURS", 24)
    PASSWORD_RESET_TOKEN_TTL_MINUTES: int = get_int_env("PASSWORD_RESET_TOKEN_TTL_MINUTES", 60)
    APP_BASE_URL: str = os.getenv("APP_BASE_URL", "http://localhost:3000")

    # Outbound email
    SMTP_HOST: Optional[str] = get_optional_env("SMTP_HOST")
    SMTP_PORT: int = get_int_env("SMTP_PORT", 465)
    SMTP_USER: Optional[str] = get_optional_env("SMTP_USER")
    SMTP_PASSWORD: Optional[str] = get_optional_env("SMTP_PASSWORD")
    SMTP_FROM: Optional[str] = get_optional_env("SMTP_FROM")
    SMTP_USE_SSL: bool = get_bool_env("SMTP_USE_SSL", True)
    EMAIL_TIMEOUT_SECONDS: int = get_int_env("EMAIL_TIMEOUT_SECONDS", 10)

    # Rate limiting
    RATE_LIMIT_BACKEND: str = os.getenv("RATE_LIMIT_BACKEND", "memory").lower()
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    FEEDBACK_RATE_LIMIT: int = get_int_env("FEEDBACK_RATE_LIMIT", 3)
    FEEDBACK_RATE_WINDOW_SECONDS: int = get_int_env("FEEDBACK_RATE_WINDOW_SECONDS", 10 * 60)
    API_RATE_LIMIT: str = os.getenv("API_RATE_LIMIT", "120/minute")

    # Feed
    FEED_PAGE_SIZE: int = get_int_env("FEED_PAGE_SIZE", 10)
    FEED_MAX_PAGE_SIZE: int = get_int_env("FEED_MAX_PAGE_SIZE", 50)

    # Bulk loader
    DATA_DIR: Path = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def email_enabled(self) -> bool:
        return self.SMTP_HOST is not None


settings = Settings()
