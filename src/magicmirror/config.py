"""Environment-based configuration for Magic Mirror."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from magicmirror.engine.validation import DEFAULT_THRESHOLD, EMBEDDING_DIM, MIN_ENROLLMENT_SAMPLES


class Settings(BaseSettings):
    """Application settings loaded from MAGICMIRROR_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MAGICMIRROR_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8083

    # Authentication (None = disabled)
    api_key: str | None = None

    # Embeddings
    embedding_dim: int = Field(default=EMBEDDING_DIM, ge=1)
    min_samples: int = Field(default=MIN_ENROLLMENT_SAMPLES, ge=1)
    default_threshold: float = Field(default=DEFAULT_THRESHOLD, ge=0.0, le=1.0)

    # Concurrency
    max_concurrent: int = Field(default=2, ge=1)
    queue_timeout: float = Field(default=5.0, gt=0)

    # Sessions and statistics
    session_retention: int = Field(default=10_000, ge=1)
    recent_window_hours: int = Field(default=24, ge=1)


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
