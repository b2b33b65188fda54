"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "Persephone"
    app_version: str = "1.0.0"
    debug: bool = False

    # LLM Provider settings
    llm_provider: str = "anthropic"
    llm_api_key: Optional[str] = None
    llm_model: Optional[str] = None  # uses provider default if not set
    llm_base_url: Optional[str] = None  # uses provider default if not set
    llm_max_tokens: int = 1024
    llm_timeout_seconds: float = 60.0

    # Legacy key name (still accepted)
    anthropic_api_key: Optional[str] = None

    # Storage
    storage_backend: str = "memory"  # memory, redis
    redis_url: str = "redis://localhost:6379/0"

    # Rate limiting
    rate_limit_daily: int = 100
    rate_limit_fail_open: bool = True  # allow traffic when the counter backend is down
    upstash_redis_rest_url: Optional[str] = None
    upstash_redis_rest_token: Optional[str] = None

    # Sessions
    session_max_messages: int = 50
    session_ttl_hours: int = 24
    session_sweep_interval_minutes: int = 60
    context_window_messages: int = 6

    # Moderation
    moderation_min_length: int = 2
    moderation_max_length: int = 2000

    # CORS
    cors_origins: list[str] = ["*"]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/persephone.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses
    log_llm_calls: bool = True  # Log all LLM calls with token usage

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def resolved_llm_api_key(self) -> Optional[str]:
        """``llm_api_key``, falling back to ``ANTHROPIC_API_KEY``."""
        return self.llm_api_key or self.anthropic_api_key


settings = Settings()
