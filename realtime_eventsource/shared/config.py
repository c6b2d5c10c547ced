"""
MODULE OVERVIEW:
This module provides application-wide configuration using Pydantic Settings.

WHAT IS HAPPENING HERE:
Every EventSource default (how long a silent stream is tolerated, how long to
wait before reconnecting, which header carries the auth token) is declared once
here and can be overridden from the environment or a `.env` file. Individual
clients may still override any of them in their constructor.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # Tolerate unrelated env vars so the client runs out of the box
        extra="ignore",
    )

    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # EventSource client
    EVENTSOURCE_TIMEOUT_S: float = 300.0
    EVENTSOURCE_RETRY_INTERVAL_MS: int = 1000
    EVENTSOURCE_AUTH_HEADER: str = "Authorization"

    # Demo stream server
    DEMO_EVENT_INTERVAL_S: float = 1.0
    DEMO_RETRY_MS: int = 3000


settings = Settings()
