"""
Settings for the Flash query builder.
"""

import logging
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class QuerySettings(BaseSettings):
    """
    Runtime settings, read from ``FLASH_QUERY_*`` environment variables or a
    ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASH_QUERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Basic Environment ---
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None
    # Emit a DEBUG record for every relation merge.
    LOG_MERGES: bool = False

    # --- Metadata ---
    # Store name given to descriptors that are not registered under another.
    DEFAULT_STORE: str = "default"

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalizes the level name and rejects names logging does not know."""
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    def is_development(self) -> bool:
        return self.DEBUG or self.ENVIRONMENT == "development"


# Singleton instance for core use
query_settings = QuerySettings()
