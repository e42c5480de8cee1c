"""
Centralized configuration for the Jirung elder-care assistant.

All settings are loaded from environment variables via .env file.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class Settings(BaseSettings):
    """Application settings."""

    # Brand / handoff channel
    brand_name: str = Field(default="Jirung", env="BRAND_NAME")
    handoff_channel_name: str = Field(default="LINE", env="HANDOFF_CHANNEL_NAME")
    line_url: Optional[str] = Field(default=None, env="LINE_URL")

    # Emergency contacts rendered into fallback and handoff texts
    emergency_number: str = Field(default="1669", env="EMERGENCY_NUMBER")
    elderly_hotline_number: str = Field(default="1646", env="ELDERLY_HOTLINE_NUMBER")

    # Triage thresholds
    default_language: str = Field(default="th", env="DEFAULT_LANGUAGE")
    confidence_normalizer: float = Field(default=3.0, env="CONFIDENCE_NORMALIZER")
    long_conversation_turns: int = Field(default=5, env="LONG_CONVERSATION_TURNS")
    complex_message_length: int = Field(default=600, env="COMPLEX_MESSAGE_LENGTH")
    fallback_context_turns: int = Field(default=3, env="FALLBACK_CONTEXT_TURNS")

    # Analytics
    analytics_timezone: str = Field(default="Asia/Bangkok", env="ANALYTICS_TIMEZONE")
    flow_limit: int = Field(default=20, env="FLOW_LIMIT")
    pattern_limit: int = Field(default=10, env="PATTERN_LIMIT")
    analytics_fetch_limit: int = Field(default=1000, env="ANALYTICS_FETCH_LIMIT")
    snippet_length: int = Field(default=160, env="SNIPPET_LENGTH")

    # OpenAI generator
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_llm_model: str = Field(default="gpt-4o-mini", env="OPENAI_LLM_MODEL")
    max_tokens: int = Field(default=1024, env="MAX_TOKENS")
    temperature: float = Field(default=0.3, env="TEMPERATURE")
    generation_timeout_seconds: float = Field(default=20.0, env="GENERATION_TIMEOUT_SECONDS")

    # Database
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # API
    api_title: str = Field(default="Jirung Elder-care Assistant API", env="API_TITLE")
    api_version: str = Field(default="1.0.0", env="API_VERSION")
    admin_api_key: Optional[str] = Field(default=None, env="ADMIN_API_KEY")
    cors_origins: str = Field(default="*", env="CORS_ORIGINS")
    rate_limit_per_minute: int = Field(default=60, env="RATE_LIMIT_PER_MINUTE")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    debug: bool = Field(default=False, env="DEBUG")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def handoff_enabled(self) -> bool:
        return bool(self.line_url and self.line_url.strip())

    @property
    def has_generator(self) -> bool:
        return bool(self.openai_api_key)


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


def configure_logging(level: Optional[str] = None):
    """Configure root logging with the service-wide format."""
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
