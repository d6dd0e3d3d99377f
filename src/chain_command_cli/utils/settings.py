"""
Runtime settings for the chain command CLI.

Priority hierarchy:
1. Environment variables (production/CI/CD)
2. .env file (local development)
3. Field defaults
"""

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ChainSettings(BaseSettings):
    """Pydantic-based settings, loaded from the environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # YAML file declaring additional chains (optional)
    chain_config: Optional[str] = Field(default=None, alias="CHAIN_CONFIG")

    log_level: str = Field(default="WARNING", alias="CHAIN_LOG_LEVEL")

    # Telemetry is only written when a directory is configured
    telemetry_dir: Optional[str] = Field(default=None, alias="CHAIN_TELEMETRY_DIR")
    disable_telemetry: bool = Field(default=False, alias="DISABLE_CHAIN_TELEMETRY")
    # Journal size in MB before it is rotated
    telemetry_max_mb: int = Field(default=50, gt=0, alias="CHAIN_TELEMETRY_MAX_MB")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept any case, reject unknown level names."""
        level = str(v or "WARNING").strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Expected one of: {', '.join(LOG_LEVELS)}"
            )
        return level

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)

    @property
    def telemetry_enabled(self) -> bool:
        return bool(self.telemetry_dir) and not self.disable_telemetry

    @property
    def telemetry_max_bytes(self) -> int:
        return self.telemetry_max_mb * 1024 * 1024


def get_settings() -> ChainSettings:
    """Build settings from the current environment."""
    return ChainSettings()
