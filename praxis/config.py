"""
Application configuration management using Pydantic Settings.

This module provides a type-safe, centralized configuration system
that loads from environment variables with sensible defaults.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Queue names (shared by producers, workers and the HTTP layer)
QUEUE_PLAN_GENERATION = "plan-generation"
QUEUE_XP_RECALCULATION = "xp-recalculation"
QUEUE_TASK_REGENERATION = "task-regeneration"

ALL_QUEUES = (QUEUE_PLAN_GENERATION, QUEUE_XP_RECALCULATION, QUEUE_TASK_REGENERATION)


class AppConfig(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All settings can be overridden via .env file or environment variables.
    Settings are validated at startup using Pydantic.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===== Redis / Job Queue =====
    REDIS_URL: str | None = Field(
        default=None,
        description="Redis URL for the RQ job queues (redis:// or rediss://)"
    )

    # ===== Supabase Configuration =====
    SUPABASE_URL: str | None = Field(
        default=None,
        description="Supabase project URL"
    )

    SUPABASE_SERVICE_KEY: str | None = Field(
        default=None,
        description="Supabase service role key (workers bypass RLS)"
    )

    # ===== Generation Provider =====
    AI_PROVIDER: Literal["ollama", "openai", "anthropic"] = Field(
        default="ollama",
        description="Generation backend kind"
    )

    AI_MODEL: str | None = Field(
        default=None,
        description="Model name override (each provider has its own default)"
    )

    AI_BASE_URL: str | None = Field(
        default=None,
        description="Provider base URL (Ollama server, OpenAI-compatible endpoint, ...)"
    )

    OPENAI_API_KEY: str | None = Field(
        default=None,
        description="OpenAI API key (required when AI_PROVIDER=openai)"
    )

    ANTHROPIC_API_KEY: str | None = Field(
        default=None,
        description="Anthropic API key (required when AI_PROVIDER=anthropic)"
    )

    AI_TEMPERATURE: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for plan generation"
    )

    AI_MAX_TOKENS: int = Field(
        default=2048,
        ge=64,
        le=32000,
        description="Maximum output tokens per provider call"
    )

    AI_TIMEOUT_SECONDS: float = Field(
        default=120.0,
        gt=0,
        le=1800,
        description="Hard timeout for a single provider call"
    )

    # ===== Worker Pools =====
    PLAN_GENERATION_CONCURRENCY: int = Field(default=2, ge=1, le=64)
    XP_RECALCULATION_CONCURRENCY: int = Field(default=5, ge=1, le=64)
    TASK_REGENERATION_CONCURRENCY: int = Field(default=3, ge=1, le=64)

    JOB_MAX_RETRIES: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Attempts after the first one before a job is dead-lettered"
    )

    JOB_RETRY_INTERVALS: str = Field(
        default="10,30,60",
        description="Comma-separated backoff (seconds) between retry attempts"
    )

    JOB_TIMEOUT: int = Field(
        default=600,
        ge=10,
        description="Maximum wall time (seconds) of one job in an RQ worker"
    )

    # ===== Stale Plan Sweeper =====
    STALE_PENDING_MINUTES: int = Field(
        default=15,
        ge=1,
        description="PENDING plans older than this are re-enqueued"
    )

    STALE_PROCESSING_MINUTES: int = Field(
        default=30,
        ge=1,
        description="PROCESSING plans untouched for this long are marked FAILED"
    )

    SWEEP_INTERVAL_SECONDS: int = Field(default=300, ge=10)

    # ===== Submission =====
    PROMPT_MAX_LENGTH: int = Field(default=2000, ge=1, le=20000)

    PLAN_PLACEHOLDER_TITLE: str = Field(
        default="Generating...",
        description="Provisional plan title shown until generation finishes"
    )

    # ===== Application Settings =====
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment mode: development or production"
    )

    DEBUG: bool = Field(default=False)

    DEV_MODE: bool = Field(
        default=True,
        description="Run in-process asyncio worker pools instead of RQ (no Redis needed)"
    )

    @field_validator("DEBUG", "DEV_MODE", mode="before")
    @classmethod
    def parse_bool_string(cls, v):
        """Parse boolean from string values (platform env vars are strings)."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return False

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    API_HOST: str = Field(default="0.0.0.0")

    API_PORT: int = Field(default=8000, ge=1024, le=65535)

    # ===== Computed Properties =====

    @property
    def retry_intervals(self) -> List[int]:
        """Backoff schedule as a list of seconds."""
        return [int(x.strip()) for x in self.JOB_RETRY_INTERVALS.split(",") if x.strip()]

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase is properly configured."""
        return self.SUPABASE_URL is not None and self.SUPABASE_SERVICE_KEY is not None

    @property
    def redis_configured(self) -> bool:
        return bool(self.REDIS_URL)


@dataclass(frozen=True)
class QueueSettings:
    """
    Explicit queue/worker configuration built once at startup.

    Producers and worker runners receive this instead of reading
    process-wide state, so tests can hand in their own values.
    """

    concurrency: Dict[str, int] = field(default_factory=lambda: {
        QUEUE_PLAN_GENERATION: 2,
        QUEUE_XP_RECALCULATION: 5,
        QUEUE_TASK_REGENERATION: 3,
    })
    max_retries: int = 3
    retry_intervals: tuple = (10, 30, 60)
    job_timeout: int = 600
    result_ttl: int = 86400
    failure_ttl: int = 604800

    @classmethod
    def from_config(cls, app_config: AppConfig) -> "QueueSettings":
        return cls(
            concurrency={
                QUEUE_PLAN_GENERATION: app_config.PLAN_GENERATION_CONCURRENCY,
                QUEUE_XP_RECALCULATION: app_config.XP_RECALCULATION_CONCURRENCY,
                QUEUE_TASK_REGENERATION: app_config.TASK_REGENERATION_CONCURRENCY,
            },
            max_retries=app_config.JOB_MAX_RETRIES,
            retry_intervals=tuple(app_config.retry_intervals),
            job_timeout=app_config.JOB_TIMEOUT,
        )

    def concurrency_for(self, queue_name: str) -> int:
        if queue_name not in self.concurrency:
            raise KeyError(f"Unknown queue: {queue_name}")
        return self.concurrency[queue_name]

    def backoff(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based); the last interval repeats."""
        if not self.retry_intervals:
            return 0
        index = min(attempt - 1, len(self.retry_intervals) - 1)
        return self.retry_intervals[index]


# Global configuration instance
# Import this in other modules: from praxis.config import config
config = AppConfig()


# Validation on startup
if __name__ == "__main__":
    print("Configuration loaded successfully!")
    print(f"Provider: {config.AI_PROVIDER} ({config.AI_MODEL or 'provider default'})")
    print(f"Redis: {'✓' if config.redis_configured else '✗'}")
    print(f"Supabase: {'✓' if config.supabase_configured else '✗'}")
    print(f"Dev mode (in-process workers): {'✓' if config.DEV_MODE else '✗'}")
    for name, workers in QueueSettings.from_config(config).concurrency.items():
        print(f"  {name}: {workers} worker(s)")
