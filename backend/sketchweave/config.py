"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    anthropic_api_key: str = ""
    sketchweave_env: str = "development"
    sketchweave_log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # Model routing
    model_default: str = "claude-sonnet-4-20250514"
    model_cheap: str = "claude-haiku-4-5-20251001"
    max_tokens: int = 4096
    temperature: float = 0.7

    # Retry policy for text generation
    ai_max_retries: int = 3
    ai_retry_delay_ms: int = 1000

    # Pause between interpreted actions (UI feedback only)
    action_delay_ms: int = 100

    # Synthesis defaults
    default_x: float = 100.0
    default_y: float = 100.0
    default_width: float = 150.0
    default_height: float = 80.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
