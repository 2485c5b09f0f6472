from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "StockFlow Inventory API"
    ENVIRONMENT: str = "local"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./stockflow.db"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Security
    # ==============================
    JWT_SECRET: str = "change-me-in-production-with-a-long-random-secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 24 * 60
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    PASSWORD_PBKDF2_ROUNDS: int = 200_000
    PASSWORD_MIN_LENGTH: int = 6

    # ==============================
    # Static admin
    # ==============================
    ADMIN_USER_ID: str = "admin-static-id"
    ADMIN_EMAIL: str = "stockflowadmin@gmail.com"
    ADMIN_NAME: str = "Stock Flow Admin"
    ADMIN_PASSWORD: Optional[str] = None
    ADMIN_PASSWORD_HASH: Optional[str] = None
    ADMIN_PASSWORD_SALT: Optional[str] = None

    # ==============================
    # Inventory defaults
    # ==============================
    DEFAULT_LOW_STOCK_THRESHOLD: int = 10
    DEFAULT_CURRENCY: str = "USD"
    DEFAULT_TIMEZONE: str = "UTC"
    HISTORY_DEFAULT_LIMIT: int = 100
    RECENT_ACTIVITY_DAYS: int = 30


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
