"""
Application configuration using pydantic-settings.

WHAT: Centralized config from environment variables
WHY: Type-safe, validated config with sensible defaults
HOW: Pydantic BaseSettings reads from .env and environment
"""

from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Literal
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App metadata
    APP_NAME: str = "Agentic Marketplace"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./data/marketplace.db"

    # LLM Provider Selection
    LLM_PROVIDER: Literal["lm_studio", "openrouter"] = "lm_studio"

    # LM Studio Configuration (off by default -> deterministic demo agents)
    LM_STUDIO_ENABLED: bool = False
    LM_STUDIO_BASE_URL: str = "http://localhost:1234/v1"
    LM_STUDIO_DEFAULT_MODEL: str = "qwen/qwen3-1.7b"
    LM_STUDIO_TIMEOUT: int = 30  # seconds

    # LLM Request Configuration
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_DELAY: float = 2  # seconds, base for exponential backoff
    LLM_DEFAULT_TEMPERATURE: float = 0.2
    LLM_DEFAULT_MAX_TOKENS: int = 1024

    # OpenRouter Configuration
    LLM_ENABLE_OPENROUTER: bool = False
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_DEFAULT_MODEL: str = "google/gemini-2.5-flash-lite"

    # Orchestration
    AGENT_STEP_TIMEOUT: float = 45.0  # seconds, hard cap on one backend call
    AUTO_CONTINUE_DELAY_SECONDS: float = 1.5
    AUTO_CONTINUE_MAX_MESSAGES: int = 60  # auto-continue stops once a negotiation has this many messages

    # Escrow
    ESCROW_CONTRACT_ADDRESS: str = ""
    ESCROW_MOCK_TRANSACTIONS: bool = False

    # CORS - accepts comma-separated string or list
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, list):
            return ",".join(v)
        return v

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/app.log"

    # Streaming / SSE
    SSE_HEARTBEAT_INTERVAL: int = 15  # seconds between keepalive pings
    EVENT_POLL_INTERVAL: float = 2.0  # seconds between event log polls
    EVENT_PAGE_LIMIT: int = 50
    REALTIME_QUEUE_SIZE: int = 100  # per-subscriber buffered deltas

    # Dev helpers
    ENABLE_DEV_ROUTES: bool = False

    class Config:
        # Look for .env in repository root first, then backend/.env
        env_file = [
            str(Path(__file__).parent.parent.parent.parent / ".env"),
            str(Path(__file__).parent.parent.parent / ".env"),
        ]
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Singleton instance
settings = Settings()
