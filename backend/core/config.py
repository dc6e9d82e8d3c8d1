"""
Trelliso Backend Configuration

Uses pydantic-settings for type-safe environment variable loading.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_S3_BUCKET = "supply-demand-inventory-1762030832"

# Find .env file: check CWD first, then parent (project root)
_env_file = Path(".env")
if not _env_file.exists():
    _parent_env = PROJECT_ROOT / ".env"
    if _parent_env.exists():
        _env_file = _parent_env


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Trelliso"
    app_version: str = "1.0.0"
    app_env: str = "local"
    debug: bool = False

    # Local data source
    local_data_dir: str = str(PROJECT_ROOT / "local_data")

    # Persisted client state (cloudMode, s3FolderPath, recommendationUpdates, currency)
    state_file: str = str(PROJECT_ROOT / ".trelliso_state.json")

    # ── Object store ─────────────────────────────────────────────────
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "us-east-1"
    s3_bucket: str = DEFAULT_S3_BUCKET
    # Host of an S3-compatible store (path-style addressing); empty means AWS
    s3_endpoint_host: str = ""
    s3_endpoint_scheme: str = "https"

    # Remote S3 proxy backend
    api_base_url: str = "http://localhost:8000"
    http_timeout_seconds: float = 30.0

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {
        "env_file": str(_env_file),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    settings = Settings()
    _enforce_guardrails(settings)
    return settings


def is_local_env(raw_env: str) -> bool:
    env = raw_env.strip().lower()
    return env in {"", "local", "dev", "development", "test"}


def _enforce_guardrails(settings: Settings) -> None:
    if is_local_env(settings.app_env):
        return

    if settings.debug:
        raise ValueError("Refusing to start with debug=true outside local/dev/test")
