"""
lv2catalog Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import sys
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_lv2_path() -> str:
    """
    Get the platform default LV2 search path.

    The entries are expanded like shell words before use, so they may
    reference ~ and environment variables.

    Returns:
        str: Colon-separated list of directories
    """
    if sys.platform == "darwin":
        return (
            "~/Library/Audio/Plug-Ins/LV2:~/.lv2"
            ":/usr/local/lib/lv2:/usr/lib/lv2:/Library/Audio/Plug-Ins/LV2"
        )
    return "~/.lv2:/usr/local/lib/lv2:/usr/lib/lv2"


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("standard", "json")


class Settings(BaseSettings):
    """Catalog settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LV2CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Search path
    lv2_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LV2_PATH", "lv2_path"),
    )  # Explicit path, used verbatim (no shell expansion)
    default_lv2_path: str = get_default_lv2_path()  # Expanded like shell words

    # Bundles
    manifest_filename: str = "manifest.ttl"
    rdf_format: str = "turtle"
    dynamic_manifest_enabled: bool = True  # Run dynamic manifest binaries

    # Graph store
    store_backend: str = "Memory"  # Indexed rdflib store
    fallback_store_backend: str = "SimpleMemory"

    # Logging
    log_level: str = "INFO"
    log_format: str = "standard"  # standard or json
    log_file: str = ""  # Rotating file log (disabled if empty)
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5

    @field_validator("manifest_filename")
    @classmethod
    def validate_manifest_filename(cls, value: str) -> str:
        """Manifest names are resolved relative to the bundle directory."""
        if not value or "/" in value or "\\" in value:
            raise ValueError(
                f"manifest_filename must be a bare file name, got: {value!r}"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize and check the log level name."""
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got: {value}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        """Ensure log format is supported."""
        fmt = value.lower()
        if fmt not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got: {value}")
        return fmt


# Global settings instance
settings = Settings()
