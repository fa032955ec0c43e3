"""
Configuration and settings for the MAIO content backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:5174",
    "http://localhost:3000",
    "http://localhost:4173",
)


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001)

    # "auto" picks mongo, then sql, then the in-memory store.
    store_backend: Literal["auto", "memory", "mongo", "sql"] = Field(default="auto")

    # Document backend (MongoDB)
    mongodb_uri: Optional[str] = Field(default=None)
    mongodb_db_name: str = Field(default="maio-news")

    # Relational backend (any SQLAlchemy URL, Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # HTTP surface
    cors_origin: Optional[str] = Field(default=None)
    public_api_url: Optional[str] = Field(default=None)
    max_json_body_bytes: int = Field(default=10 * 1024 * 1024)

    upload_dir: str = Field(default="uploads")

    # Development toggles
    enable_cleanup_endpoint: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @property
    def allowed_origins(self) -> list[str]:
        origins = list(DEV_ORIGINS)
        if self.cors_origin:
            origins.append(self.cors_origin)
        return origins

    def resolved_store_backend(self) -> str:
        if self.store_backend != "auto":
            return self.store_backend
        if self.mongodb_uri:
            return "mongo"
        if self.database_url:
            return "sql"
        return "memory"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
