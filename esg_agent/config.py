"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - No Anthropic key means no model calls: every branch uses the fallback scorer

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box locally
    - Domain tuning stays in frozen dataclasses (core/scoring_config.py); Settings only
      overrides the commonly tuned knobs through build_validation_config()
"""

from dataclasses import replace
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from esg_agent.core.scoring_config import DEFAULT_VALIDATION_CONFIG, ValidationConfig


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Anthropic
    anthropic_api_key: str | None = None
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 60
    anthropic_base_delay_ms: int = 1000
    anthropic_max_delay_ms: int = 60_000

    # Classifier
    classifier_model: str = "claude-haiku-4-5"
    classifier_max_tokens: int = 1024
    classifier_call_timeout_seconds: float = Field(default=30.0, gt=0)

    # Orchestrator
    orchestrator_workers: int = Field(default=4, ge=1)
    task_queue_max_size: int = Field(default=1000, ge=1)
    default_compliance_framework: str = "GRI"

    # Validation
    validation_pass_threshold: float = Field(default=50.0, ge=0, le=100)
    outlier_z_threshold: float = Field(default=2.5, gt=0)
    timeliness_fresh_days: int = 30
    timeliness_stale_days: int = 365

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("anthropic_api_key", mode="before")
    @classmethod
    def blank_key_is_none(cls, v):
        """An empty ANTHROPIC_API_KEY disables model calls instead of failing auth."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("default_compliance_framework", mode="before")
    @classmethod
    def upper_framework(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


def build_validation_config(settings: Settings) -> ValidationConfig:
    """Overlay the env-tunable thresholds on the default ValidationConfig."""
    return replace(
        DEFAULT_VALIDATION_CONFIG,
        pass_threshold=settings.validation_pass_threshold,
        z_threshold=settings.outlier_z_threshold,
        timeliness_fresh_days=settings.timeliness_fresh_days,
        timeliness_stale_days=settings.timeliness_stale_days,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
