"""
Application configuration using pydantic-settings.

Loads configuration from environment variables (prefixed with ``ATABAI_``)
with sensible defaults.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ATABAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Branding
    include_logo: bool = True
    logo_path: Path = Path("/app/public/assets/images/icons/logo-text-uc.png")
    logo_width_px: int = 188
    logo_height_px: int = 50
    brand_text: str = "ATABAI"
    watermark_text: Optional[str] = "Processed by ATABAI"

    # Layout
    label_column_width: float = 55
    period_column_width: float = 18
    default_style: str = "atabai"
    default_colorway: str = "atabai"

    # Output
    output_dir: Path = Path("./output")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
