"""Application configuration module.

This module contains settings for the short-link service,
loaded from environment variables with appropriate defaults.
"""

from __future__ import annotations

import logging
import string
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import ValidationInfo, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Set up basic logger for config module
logger = logging.getLogger(__name__)

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent

DEFAULT_SECRET_KEY = "change_this_to_a_secure_random_string_in_production"


class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with defaults.

    Settings are loaded from environment variables, with fallback to
    values in .env file if present, and finally to the default values
    specified here.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment setting
    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # App Information
    APP_NAME: str = "Link Shortener"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Short links with redirect caching and click analytics"

    # API Configuration
    BASE_URL: str = "http://localhost:8000/api/url"  # Prefix of every fullShortUrl
    API_PREFIX: str = "/api"
    DEBUG: bool = False

    # CORS settings
    CORS_ORIGINS: Union[List[str], str] = ["*"]

    # Short code generation
    URL_CODE_LENGTH: int = 7
    URL_CODE_CHARS: str = string.ascii_letters + string.digits
    URL_CODE_MAX_RETRIES: int = 1  # Regenerations after a collision before giving up
    URL_MAX_LENGTH: int = 2048

    # Pagination
    PAGE_SIZE_DEFAULT: int = 10
    PAGE_SIZE_MAX: int = 100

    # PostgreSQL settings
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "link_shortener"
    DATABASE_URL: Optional[str] = None  # Full override, e.g. sqlite+aiosqlite:///./dev.db

    # PostgreSQL pool settings
    POSTGRES_POOL_SIZE: int = 20
    POSTGRES_POOL_MAX_OVERFLOW: int = 10
    POSTGRES_POOL_TIMEOUT: int = 30
    POSTGRES_POOL_RECYCLE: int = 300
    DB_ECHO: bool = False

    # Startup connectivity
    DB_RECONNECT_DELAY: float = 5.0  # Seconds before the single reconnect attempt
    DB_CREATE_TABLES: bool = False

    # Redis settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    REDIS_URL: Optional[str] = None
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_SOCKET_TIMEOUT: float = 2.0
    REDIS_CONNECT_TIMEOUT: float = 2.0

    # Cache settings
    CACHE_TIMEOUT: int = 3600
    CACHE_ENABLED: bool = True

    # Click tracking
    TRACKING_WORKERS: int = 2
    TRACKING_QUEUE_SIZE: int = 10000
    TRACKING_SHUTDOWN_TIMEOUT: float = 10.0

    # Security
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    JWT_ALGORITHM: str = "HS256"
    TOKEN_EXPIRE_MINUTES: int = 10080

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILENAME: str = "app.log"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "7 days"
    LOG_FORMAT: str = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message}"
    LOG_JSON: bool = True

    # Validators
    @field_validator("SECRET_KEY")
    def validate_secret_key(cls, v: str, info: ValidationInfo) -> str:
        env_value = info.data.get("ENVIRONMENT", EnvironmentType.DEVELOPMENT)
        if v == DEFAULT_SECRET_KEY and env_value == EnvironmentType.PRODUCTION:
            logger.warning("Using default SECRET_KEY in production environment! This is a security risk.")
        return v

    @field_validator("URL_CODE_CHARS")
    def validate_code_chars(cls, v: str) -> str:
        """Short codes end up in a URL path, so only unreserved characters are allowed."""
        allowed = set(string.ascii_letters + string.digits + "-_")
        if not v or not set(v) <= allowed:
            raise ValueError("URL_CODE_CHARS must be a non-empty set of url-safe characters")
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    def validate_list_or_string(cls, v: Any) -> List[str]:
        """Convert comma-separated string to list if needed."""
        if isinstance(v, str):
            if not v.strip():
                return []
            if v == "*":
                return ["*"]
            return [item.strip() for item in v.split(",")]
        return v

    # Computed fields
    @computed_field
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Construct the SQLAlchemy database URI from settings or use override."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @computed_field
    def REDIS_URI(self) -> str:
        """Construct the Redis URI from settings or use override."""
        if self.REDIS_URL:
            return self.REDIS_URL
        password_part = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{password_part}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


# Create a singleton instance of the settings
settings = Settings()
