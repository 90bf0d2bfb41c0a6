"""
API configuration settings.

DATABASE_URL, JWT_SECRET and PORT have no defaults: the process refuses to
start when any of them is missing from the environment or the .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Bookshelf API"
    api_version: str = "1.0.0"
    api_description: str = "User signup/login and book catalog CRUD over MongoDB"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = Field(..., description="Listen port")
    debug: bool = False

    # Database Settings
    database_url: str = Field(..., description="MongoDB connection string")
    user_database: str = "userDB"
    user_collection: str = "userCollection"
    books_database: str = "booksDB"
    books_collection: str = "booksCollection"

    # Security Settings
    jwt_secret: str = Field(..., description="Token signing secret")
    jwt_algorithm: str = "HS256"
    token_expire_days: int = 7

    # CORS Settings
    cors_origins: list = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("jwt_secret")
    @classmethod
    def validate_secret(cls, v):
        """Refuse an empty signing secret."""
        if not v or not v.strip():
            raise ValueError("jwt_secret must not be empty")
        return v

    @field_validator("token_expire_days")
    @classmethod
    def validate_expiry(cls, v):
        if v < 1:
            raise ValueError("token_expire_days must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()


@lru_cache
def get_config() -> APIConfig:
    """
    Load configuration from the environment once per process.

    Raises:
        pydantic.ValidationError: If a required setting is missing or invalid
    """
    return APIConfig()
