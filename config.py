"""
config.py — Village Land Registry Global Configuration
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List


class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    APP_NAME: str = "Village Land Registry"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # API Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./landregistry.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Store calls
    STORE_TIMEOUT_SECONDS: float = 10.0
    TRANSFER_MAX_ATTEMPTS: int = 3
    TRANSFER_RETRY_MIN_SECONDS: float = 0.05
    TRANSFER_RETRY_MAX_SECONDS: float = 1.0

    # Cryptography
    ENCRYPTION_KEY: str = ""

    # Registry
    REGISTRY_ADMIN: str = "REGISTRY_ADMIN"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "landregistry.log"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
