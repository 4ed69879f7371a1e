"""
Configuration management for the compliance engine

This module provides centralized configuration using Pydantic Settings so
that the engine, the LLM providers and the audit event client read the
environment in one place.
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Centralized configuration for SpecGuard.

    All settings are loaded from environment variables (.env file).
    Nothing here is required: without an LLM key the engine still runs and
    degrades to its deterministic rules and fallback verdicts.
    """

    # ==================== LLM Provider ====================
    llm_provider: str = "openai"        # "openai" | "gemini"
    llm_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    base_url: str = "https://api.openai.com/v1/"
    custom_model_name: Optional[str] = None

    # ==================== Oracle Calls ====================
    structured_max_tokens: int = 4096
    coaching_max_tokens: int = 1000
    oracle_temperature: float = 0.2

    # ==================== Logging ====================
    log_level: str = "INFO"
    log_file: str = "logs/specguard.log"
    json_logs: bool = True

    # ==================== Audit Event API ====================
    event_api_base_url: Optional[str] = None
    event_api_client_id: Optional[str] = None
    event_api_client_secret: Optional[str] = None
    event_source: str = "swiftly-spec-generator"
    event_token_skew_seconds: int = 60
    event_timeout_seconds: float = 10.0

    class Config:
        """Pydantic configuration"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False  # Allow lowercase env vars
        extra = "ignore"  # Ignore extra env vars


# Global settings instance
settings = Settings()
