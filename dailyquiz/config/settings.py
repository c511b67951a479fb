"""
Runtime Settings

Centralized configuration for the quiz backend.
All values are loaded from environment variables (a project-root .env is
honoured) once, at import time.
"""
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"

load_dotenv(dotenv_path=ENV_FILE)


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on garbage."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_list_env(key: str, default: str = "") -> List[str]:
    """Comma separated environment variable as a list of non-empty items."""
    return [item.strip() for item in os.getenv(key, default).split(",") if item.strip()]


class Settings:
    """
    Settings for the application.

    To add a new setting:
    1. Add it here as a class attribute
    2. Load it from an environment variable
    3. Read it through `settings`
    """

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Persistence
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./dailyquiz.db")
    SQLITE_BUSY_TIMEOUT_SECONDS: int = get_int_env("SQLITE_BUSY_TIMEOUT_SECONDS", 30)

    # Tokens
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = get_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 12 * 60)

    # Default operator account, created on startup when missing
    ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "password123")

    # Submission ledger
    SUBMIT_MAX_RETRIES: int = get_int_env("SUBMIT_MAX_RETRIES", 3)

    # Startup behaviour
    SEED_SAMPLE_QUESTION: bool = get_bool_env("SEED_SAMPLE_QUESTION", False)
    RATE_LIMITS_ENABLED: bool = get_bool_env("RATE_LIMITS_ENABLED", True)

    CORS_ORIGINS: List[str] = get_list_env("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == "development"


# Singleton instance for easy importing
settings = Settings()
