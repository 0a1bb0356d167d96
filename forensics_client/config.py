"""Forensics client configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Forensics client settings.

    All fields can be overridden via environment variables with
    the FORENSICS_ prefix (e.g., FORENSICS_API_BASE_URL).
    """

    api_base_url: str = "http://127.0.0.1:8000"
    compare_faces_path: str = "/compare-faces"
    access_token: str | None = None
    request_timeout: float = 60.0
    default_threshold: float = 75.0
    progress_step_delay: float = 0.0  # seconds between probes, 0 disables
    plugin_dir: Path = Path("plugins")
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = ["http://localhost:5173"]
    behind_proxy: bool = False  # Set FORENSICS_BEHIND_PROXY=true in Docker
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "FORENSICS_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
