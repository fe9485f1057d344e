# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Extension manager settings, overridable via ``EXTENSIONS_*`` env vars."""

    model_config = SettingsConfigDict(
        env_prefix="EXTENSIONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Extensions root and the files kept inside it
    root: str = "./private/ext"
    state_file: str = ".state"
    state_template_file: str = ".state.dist"
    lock_file: str = ".state.lock"

    # Upload limits (bytes)
    max_archive_bytes: int = 50 * 1024 * 1024
    max_extracted_bytes: int = 200 * 1024 * 1024

    # Scaffold defaults
    generate_guidance: bool = True

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
