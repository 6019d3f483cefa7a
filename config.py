"""Configuration management for the Kisekka Online backend.

Loads settings from .env file with Pydantic validation. Supports dual-database mode
(SQLite for tests, Supabase for production) and dual upload storage (local
filesystem for tests, Cloudflare R2 for production).
"""
import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Use DATABASE_URL for SQLite (tests), or SUPABASE_URL/KEY for production.
    Uploads go to R2 when R2_ACCOUNT_ID is set, otherwise to LOCAL_UPLOAD_DIR.
    """
    model_config = SettingsConfigDict(env_file=os.getenv("ENV_FILE", ".env"), case_sensitive=True, extra="ignore")

    # Database (SQLite for tests, Supabase for production)
    DATABASE_URL: Optional[str] = None  # SQLite: sqlite:///./test.db

    # Supabase (database + phone OTP auth)
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""  # service_role key for backend

    # Cloudflare R2 object storage (S3 compatible)
    R2_ACCOUNT_ID: str = ""
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    R2_BUCKET_NAME: str = ""
    R2_PUBLIC_URL: str = ""  # custom public domain, e.g. https://images.kisekka.online

    # Local upload storage (used when R2 is not configured)
    LOCAL_UPLOAD_DIR: str = "./uploads"
    LOCAL_UPLOAD_URL: str = "http://localhost:8000/uploads"

    # CORS - strict allowlist
    FRONTEND_URL: str = "http://localhost:3000"
    PRODUCTION_URL: str = ""

    # Test mode settings
    TEST_MODE: bool = False

    SECRET_KEY: str = "dev-secret-key-change-in-production"

    # Marketplace
    DEFAULT_MARKET_ID: str = "kisekka"
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 50
    COUNTRY_CODE: str = "256"
    UPLOAD_MAX_SIZE_KB: int = 200

    # Lifecycle expiry windows (days since last activity)
    POST_EXPIRY_DAYS: int = 30
    LISTING_EXPIRY_DAYS: int = 60

    @property
    def r2_enabled(self) -> bool:
        return bool(self.R2_ACCOUNT_ID and self.R2_BUCKET_NAME)


@lru_cache()
def get_settings(env_file: str = ".env") -> Settings:
    """Get cached settings instance.

    Uses LRU cache to avoid re-parsing .env on every import.
    Allows env_file override for testing with isolated configurations.
    """
    return Settings(_env_file=env_file)


def load_settings_from_env() -> Settings:
    """Build a fresh, uncached settings instance from the current environment."""
    return Settings(_env_file=os.getenv("ENV_FILE", ".env"))


# Default settings instance (respects ENV_FILE when set)
settings = get_settings(os.getenv("ENV_FILE", ".env"))
