from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenRouter (judge provider)
    OPENROUTER_API_KEY: str
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"

    # Judge model
    JUDGE_MODEL: str = "openai/gpt-4o"
    JUDGE_FALLBACK_MODELS: list[str] = Field(default_factory=lambda: ["anthropic/claude-sonnet-4.6"])
    JUDGE_TEMPERATURE: float = 0.0
    JUDGE_MAX_TOKENS: int = 256
    JUDGE_TIMEOUT_SECONDS: float = 30.0

    # Durable storage
    EVAL_DATA_DIR: str = "data"

    # Scheduler
    EVAL_QUEUE_MAX_SIZE: int = 100
    EVAL_MAX_RETRIES: int = 3
    EVAL_BASE_DELAY_SECONDS: float = 0.5
    EVAL_DELAY_GROWTH_FACTOR: float = 1.5
    EVAL_PRESSURE_DIVISOR: int = 10
    EVAL_MAX_DELAY_EXPONENT: float = 3.0

    # LangSmith
    LANGSMITH_API_KEY: str = ""
    LANGSMITH_PROJECT: str = "quality-eval"
    LANGCHAIN_TRACING_V2: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = Field(default="json", description="'json' for production, 'console' for dev")


def get_settings() -> Settings:
    return Settings()
