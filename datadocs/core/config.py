"""Settings for datadocs, read from the environment and an optional ``.env`` file."""

from enum import Enum
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List, Optional


SUPPORTED_LANGUAGES = ("en", "fr")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOCAL_HOSTS = ("localhost", "127.0.0.1")


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Settings cannot be used to start the service."""


class Settings(BaseSettings):
    """Service settings.

    ``SECRET_KEY`` and a readable stopword list are hard requirements;
    main.py exits at import time without them.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="development or production"
    )

    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated browser origins allowed to call the API"
    )

    database_url: str = Field(
        default="sqlite:///./datadocs.db",
        description="SQLAlchemy URL of the text store"
    )
    # PostgreSQL pool; SQLite ignores these.
    db_pool_size: int = Field(default=5, description="Persistent connections kept in the pool")
    db_max_overflow: int = Field(default=10, description="Connections allowed above pool size")
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a free connection")
    db_pool_recycle: int = Field(default=1800, description="Seconds before a connection is replaced")

    # Every revision is sealed with a key derived from this value.
    # Changing it makes the existing history unreadable.
    secret_key: str = Field(
        default="",
        description="Source of the text encryption key (required)"
    )

    stopwords_path: Optional[str] = Field(
        default=None,
        description="Stopword list for keyword extraction; the packaged list when unset"
    )
    keyword_summary_size: int = Field(
        default=1,
        ge=1,
        description="How many top keywords the keyword summary shows"
    )
    markdown_tables: bool = Field(
        default=True,
        description="Render pipe tables when converting Markdown to HTML"
    )

    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="json", description="json or text")

    def get_cors_origins(self) -> List[str]:
        """Allowed origins as a list. A ``*`` entry is refused."""
        origins = [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
        if "*" in origins:
            raise ValueError(
                "CORS_ALLOWED_ORIGINS may not contain '*'; list the allowed origins explicitly"
            )
        return origins

    def local_cors_origins(self) -> List[str]:
        return [o for o in self.get_cors_origins() if any(host in o for host in _LOCAL_HOSTS)]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {list(_LOG_LEVELS)}")
        return level

    def validate_production_config(self) -> None:
        """Refuse settings the service cannot start with.

        A missing secret key is fatal in every environment; local CORS
        origins only in production.

        Raises:
            ConfigurationError
        """
        if not self.secret_key:
            raise ConfigurationError(
                "SECRET_KEY is not set. Text revisions are encrypted at rest "
                "and cannot be read or written without it."
            )

        if self.environment == Environment.PRODUCTION and self.local_cors_origins():
            raise ConfigurationError(
                f"CORS_ALLOWED_ORIGINS contains local origins in production: "
                f"{self.local_cors_origins()}"
            )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


settings = Settings()
