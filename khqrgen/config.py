"""Application configuration utilities."""
from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Root logger level")
    json_logs: bool = Field(default=True, description="Enable JSON formatted logs")


class Settings(BaseSettings):
    """Central application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="khqrgen")
    environment: Literal["development", "staging", "production"] = Field(default="development")
    api_key: str = Field(default="dev-secret-key")
    database_url: str = Field(default="sqlite+aiosqlite:///./khqrgen.db")
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    gateway_slug: str = Field(default="bakong")
    default_merchant_id: str = Field(default="merchant@bakong")
    default_merchant_name: str = Field(default="GameHost")
    default_merchant_city: str = Field(default="Phnom Penh")
    usd_to_khr_rate: Decimal = Field(default=Decimal("4100"), gt=0)
    strict_truncation: bool = Field(default=False, validation_alias=AliasChoices("KHQR_STRICT", "STRICT_TRUNCATION"))
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return memoized application settings."""

    return Settings()


settings = get_settings()
