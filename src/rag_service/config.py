"""
Service Configuration

Environment-derived settings for the RAG service. A single ``Settings``
instance is built at startup (``load_settings``) and handed to every component
constructor; nothing below the entry points reads the environment directly.
"""

from __future__ import annotations

from functools import lru_cache
from urllib.parse import quote_plus

from pydantic import Field, SecretStr, ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .chunking.chunker import ChunkingOptions, ChunkingStrategy, parse_strategy
from .core.errors import ConfigurationError


class Settings(BaseSettings):
    # Server
    server_host: str = "0.0.0.0"
    server_port: int = Field(default=8080, ge=1, le=65535)

    # Database
    db_host: str = "localhost"
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_user: str = "postgres"
    db_password: SecretStr = SecretStr("postgres")
    db_name: str = "ragdb"
    db_ssl_mode: str = "disable"

    # Gemini
    gemini_api_key: SecretStr
    gemini_text_model: str = "gemini-1.5-pro"
    gemini_embedding_model: str = "embedding-001"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1"

    # Embeddings
    embedding_dimensions: int = Field(default=768, gt=0)

    # Ingestion defaults (CLI)
    chunk_strategy: ChunkingStrategy = ChunkingStrategy.PARAGRAPH
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=100, ge=0)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("chunk_strategy", mode="before")
    @classmethod
    def _fallback_strategy(cls, value):
        return parse_strategy(value)

    @property
    def database_url(self) -> str:
        """
        Async SQLAlchemy URL for the configured PostgreSQL instance.
        """
        url = (
            f"postgresql+asyncpg://{quote_plus(self.db_user)}:"
            f"{quote_plus(self.db_password.get_secret_value())}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )
        if self.db_ssl_mode and self.db_ssl_mode != "disable":
            url += f"?ssl={self.db_ssl_mode}"
        return url

    def chunking_options(self) -> ChunkingOptions:
        return ChunkingOptions(
            strategy=self.chunk_strategy,
            max_chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment, raising ``ConfigurationError`` on
    missing or malformed values.
    """
    try:
        return Settings(**overrides)
    except PydanticValidationError as exc:
        fields = ", ".join(
            ".".join(str(p) for p in err["loc"]) or "<root>" for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {fields}") from exc


@lru_cache
def get_settings() -> Settings:
    return load_settings()
