"""Application configuration management."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PACKAGE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Centralised application settings derived from environment variables."""

    anthropic_api_key: str
    anthropic_model: str = Field(default="claude-sonnet-4-5-20250929")
    generation_max_tokens: int = Field(default=8192, ge=256)
    generation_temperature: float = Field(default=0.4, ge=0.0, le=1.0)

    plan_weeks: int = Field(
        default=4,
        ge=1,
        le=24,
        description="Number of weeks requested for a freshly generated plan.",
    )

    database_url: str = Field(
        default="sqlite:///./data/runcoach.db",
        description="SQLAlchemy-compatible database URL for profile/plan storage.",
    )
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=8000, ge=1, le=65535)

    debug: bool = Field(default=False)

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))
    prompt_config_path: Path = Field(default=_PACKAGE_DIR / "prompts" / "coach_prompts.yaml")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("anthropic_api_key")
    @classmethod
    def validate_api_key(cls, value: str) -> str:
        """Ensure the API key is not left as a placeholder."""

        if value.strip().lower() in {"", "change-me", "changeme", "your-api-key"}:
            raise ValueError(
                "ANTHROPIC_API_KEY is required. Update your .env file with a real key before running the app."
            )
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        valid = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        upper = value.upper()
        if upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(sorted(valid))}")
        return upper


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance so it can be reused across the app."""

    settings = Settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    return settings
