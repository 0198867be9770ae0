"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
Services receive plain values from the runtime; only the composition
root and the worker read `settings` directly.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="trainer")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)
    # Full SQLAlchemy async URL; overrides the POSTGRES_* parts when set.
    DATABASE_URL: Optional[str] = Field(default=None)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # Text completion (Anthropic)
    ANTHROPIC_API_KEY: Optional[str] = Field(default=None)
    PRIMARY_MODEL: str = Field(default="claude-haiku-4-5")
    # Weekly program rewrites may use a stronger model.
    PROGRAM_MODEL: Optional[str] = Field(default=None)
    BASELINE_MAX_TOKENS: int = Field(default=512, ge=1)
    PROGRAM_REWRITE_MAX_TOKENS: int = Field(default=16384, ge=1)

    # Assessment event log: retries on sequence-number conflicts
    EVENT_LOG_MAX_ATTEMPTS: int = Field(default=5, ge=1)
    EVENT_LOG_MAX_JITTER_MS: int = Field(default=50, ge=0)

    # Calendar projection
    CALENDAR_HORIZON_DAYS: int = Field(default=28, ge=1)
    CALENDAR_DEFAULT_DAYS_PER_WEEK: int = Field(default=3, ge=1, le=7)

    # Celery Configuration
    CELERY_BROKER_URL: str = Field(default="redis://redis:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://redis:6379/0")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )

    @property
    def program_model(self) -> str:
        return self.PROGRAM_MODEL or self.PRIMARY_MODEL


# Global settings instance
settings = Settings()
