"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """canisense server and analysis configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback: the analysis surface has no auth layer.
    canisense_host: str = "127.0.0.1"
    canisense_port: int = 8010
    canisense_log_level: str = "info"
    canisense_allow_insecure_bind: bool = False

    # Analysis
    # A YAML file, when set, takes precedence over the fields below.
    analysis_config_path: str = ""
    enable_debug: bool = False
    # Empty means every known engine is active.
    active_engines: list[str] = []
    fusion_weights: dict[str, float] = {}
    locale: str = "en"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
