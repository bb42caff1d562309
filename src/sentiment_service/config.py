"""
Configuration settings for the Sentiment Analysis Service.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development (see .env.example).
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Sentiment Analysis Service"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"  # Active profile: development, production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 8080

    # === Ollama Configuration ===
    OLLAMA_BASE_URL: str = "http://ollama:11434"
    OLLAMA_MODEL: str = "llama3.2:3b"
    OLLAMA_TIMEOUT: float = 10.0  # seconds, per backend call

    # === LLM Generation Parameters ===
    LLM_TEMPERATURE: float = 0.0
    LLM_MAX_TOKENS: int = 128
    PROMPT_TEMPLATES_DIR: str | None = None  # None = templates bundled with the package

    # === Backend Retry ===
    BACKEND_MAX_RETRIES: int = 2  # Additional attempts after the first call
    BACKOFF_BASE_SECONDS: float = 0.25
    BACKOFF_MAX_SECONDS: float = 4.0
    BACKOFF_JITTER_SECONDS: float = 0.25

    # === Request Coordinator ===
    MAX_TEXT_LENGTH: int = 5000  # chars
    MAX_CONCURRENT_BACKEND_CALLS: int = 4
    MAX_QUEUE_DEPTH: int = 32
    QUEUE_TIMEOUT_SECONDS: float = 30.0
    RESULT_FRESHNESS_TTL_SECONDS: int = 86400  # 24 hours
    FREEFORM_DEFAULT_CONFIDENCE: float = 0.6  # Used when free text carries no score

    # === Circuit Breaker ===
    CIRCUIT_WINDOW_SECONDS: float = 60.0
    CIRCUIT_MINIMUM_CALLS: int = 5
    CIRCUIT_FAILURE_RATE_THRESHOLD: float = 0.5
    CIRCUIT_COOLDOWN_SECONDS: float = 30.0

    # === Result Store ===
    RESULT_STORE_BACKEND: str = "sql"  # sql, redis, memory
    DATABASE_URL: str = "postgresql+asyncpg://postgres:5432/sentiment"
    DATABASE_USER: str | None = None
    DATABASE_PASSWORD: str | None = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 5
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50
    RESULT_RETENTION_SECONDS: int = 7 * 86400  # How long the Redis store keeps results

    # === Celery ===
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"
    CELERY_TASK_TIME_LIMIT: int = 120  # seconds
    CELERY_WORKER_CONCURRENCY: int = 4

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True

    @field_validator("RESULT_STORE_BACKEND")
    @classmethod
    def _check_store_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in {"sql", "redis", "memory"}:
            raise ValueError(f"Unsupported RESULT_STORE_BACKEND: {value}")
        return value

    @field_validator("CIRCUIT_FAILURE_RATE_THRESHOLD", "FREEFORM_DEFAULT_CONFIDENCE")
    @classmethod
    def _check_ratio(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("must be between 0.0 and 1.0")
        return value

    @property
    def database_dsn(self) -> str:
        """DATABASE_URL with DATABASE_USER/DATABASE_PASSWORD merged in."""
        url = make_url(self.DATABASE_URL)
        if self.DATABASE_USER:
            url = url.set(username=self.DATABASE_USER)
        if self.DATABASE_PASSWORD:
            url = url.set(password=self.DATABASE_PASSWORD)
        return url.render_as_string(hide_password=False)


# Global settings instance
settings = Settings()
