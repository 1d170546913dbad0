"""
Application settings using Pydantic.

Provides environment-based configuration loading with CNAMODEL_ prefix.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CNAMODEL_",
    )

    # Service template envelope
    template_author: str = "CNA modeling tool"
    template_version: str = "0.1.0"
    template_description: str = "Service template generated by the CNA modeling tool"

    # CLI
    output_format: Literal["yaml", "json"] = "yaml"
    log_level: str = "WARNING"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
