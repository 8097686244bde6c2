# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/config.py
from __future__ import annotations
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    # API
    PORT: int = 8011
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    LOG_LEVEL: str = "INFO"

    # Anthropic
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL_CHAT: str = "claude-sonnet-4-20250514"
    ANTHROPIC_MODEL_VISION: str = "claude-sonnet-4-20250514"
    MAX_OUTPUT_TOKENS: int = 2048

    # Where the client-side assembler sends chat requests
    MODEL_GATEWAY_URL: str = Field(default="http://localhost:8011/api/ai/chat?stream=true",
                                   alias="AQUABOT_GATEWAY_URL")
    # Base URL for the action execution endpoint
    ACTIONS_ENDPOINT_URL: str = Field(default="http://localhost:3000/api/ai/actions/execute",
                                      alias="AQUABOT_ACTIONS_URL")
    MODEL_CONNECT_TIMEOUT_SECONDS: float = 30.0
    ACTIONS_TIMEOUT_SECONDS: float = 30.0

    # Context limits
    CONTEXT_PARAMETER_LIMIT: int = 5
    CONTEXT_MAINTENANCE_LIMIT: int = 10
    CHAT_HISTORY_LIMIT: int = 50
    # History above this estimate gets its older part summarized
    SUMMARIZE_THRESHOLD_TOKENS: int = 150_000

    # Photo diagnosis
    DIAGNOSIS_MAX_ATTEMPTS: int = 3
    DIAGNOSIS_BACKOFF_SECONDS: float = 1.0

    # Postgres
    PGHOST: str = Field(default="localhost", alias="POSTGRES_HOST")
    PGPORT: int = Field(default=5432, alias="POSTGRES_PORT")
    PGDATABASE: str = Field(default="postgres", alias="POSTGRES_DATABASE")
    PGUSER: str = Field(default="postgres", alias="POSTGRES_USER")
    PGPASSWORD: str = Field(default="postgres", alias="POSTGRES_PASSWORD")
    PGSSL: bool = Field(default=False, alias="POSTGRES_SSL")

@lru_cache()
def get_settings() -> Settings:
    return Settings()
