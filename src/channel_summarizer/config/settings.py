"""Application settings with YAML defaults and .env overrides."""

import logging
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from channel_summarizer.config.loader import get_yaml_defaults

logger = logging.getLogger(__name__)

# Get flattened defaults from YAML config
_yaml_defaults = get_yaml_defaults()


def _yaml_field(key: str, default, *aliases: str):
    """Create a Pydantic Field with YAML default.

    Args:
        key: Flattened YAML key (e.g., "SUMMARY_MODEL").
        default: Fallback default if not in YAML.
        aliases: Environment variable names accepted for this field.
    """
    yaml_value = _yaml_defaults.get(key.upper(), default)
    if aliases:
        return Field(default=yaml_value, validation_alias=AliasChoices(*aliases))
    return Field(default=yaml_value)


class Settings(BaseSettings):
    """Application settings loaded from YAML defaults + environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ============================================================================
    # Telegram
    # ============================================================================

    TELEGRAM_BOT_TOKEN: str | None = Field(
        default=None, validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "BOT_TOKEN")
    )  # Secret

    # ============================================================================
    # Session storage
    # ============================================================================

    SESSION_STORAGE: Literal["redis", "memory"] = _yaml_field("SESSION_STORAGE", "redis")
    REDIS_URL: str = _yaml_field("SESSION_REDIS_URL", "redis://localhost:6379/0")
    # 7 days
    SESSION_TTL_SECONDS: int = _yaml_field("SESSION_TTL_SECONDS", 60 * 60 * 24 * 7)

    # ============================================================================
    # LLM
    # ============================================================================

    OPENAI_API_KEY: str | None = None  # Secret
    OPENAI_BASE_URL: str | None = _yaml_field("LLM_BASE_URL", None)

    SUMMARY_MODEL: str = _yaml_field("SUMMARY_MODEL", "gpt-4o")
    SUMMARY_MAX_TOKENS: int = _yaml_field("SUMMARY_MAX_TOKENS", 4096)
    SUMMARY_TEMPERATURE: float = _yaml_field("SUMMARY_TEMPERATURE", 0.4)
    SUMMARY_TIMEOUT_SECONDS: float = _yaml_field("SUMMARY_TIMEOUT_SECONDS", 120.0)

    MODERATION_ENABLED: bool = _yaml_field(
        "MODERATION_ENABLED", False, "MODERATION_ENABLED", "MODERATION"
    )
    MODERATION_MODEL: str = _yaml_field("MODERATION_MODEL", "omni-moderation-latest")

    # ============================================================================
    # Access control / audit (PostgreSQL)
    # ============================================================================

    HAS_USER_LIMITATION: bool = _yaml_field("ACCESS_HAS_USER_LIMITATION", False)
    HISTORY_LIMIT: int = _yaml_field("ACCESS_HISTORY_LIMIT", 5)

    POSTGRES_HOST: str = _yaml_field("STORAGE_POSTGRES_HOST", "localhost")
    POSTGRES_PORT: int = _yaml_field("STORAGE_POSTGRES_PORT", 5432)
    POSTGRES_USER: str = _yaml_field("STORAGE_POSTGRES_USER", "channel_summarizer")
    POSTGRES_PASSWORD: str = ""  # Secret - override in .env
    POSTGRES_DB: str = _yaml_field("STORAGE_POSTGRES_DB", "channel_summarizer")
    POSTGRES_POOL_MAX_SIZE: int = _yaml_field("STORAGE_POSTGRES_POOL_MAX_SIZE", 5)

    # ============================================================================
    # Logging
    # ============================================================================

    LOG_LEVEL: str = _yaml_field("LOGGING_LEVEL", "INFO")
    LOG_FILE: str | None = _yaml_field("LOGGING_FILE", None)

    @field_validator("OPENAI_BASE_URL", "LOG_FILE", "TELEGRAM_BOT_TOKEN", mode="before")
    @classmethod
    def empty_string_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def POSTGRES_URL(self) -> str:
        """asyncpg connection string."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


def validate_config(config: Settings | None = None) -> list[str]:
    """Return a list of configuration problems (empty when the bot can start)."""
    config = config or settings
    errors: list[str] = []

    if not config.TELEGRAM_BOT_TOKEN:
        errors.append("TELEGRAM_BOT_TOKEN (or BOT_TOKEN) is not set.")
    if not config.OPENAI_API_KEY:
        errors.append("OPENAI_API_KEY is not set.")
    if config.SESSION_TTL_SECONDS <= 0:
        errors.append("SESSION_TTL_SECONDS must be positive.")
    if config.SUMMARY_MAX_TOKENS <= 0:
        errors.append("SUMMARY_MAX_TOKENS must be positive.")
    if not 0.0 <= config.SUMMARY_TEMPERATURE <= 2.0:
        errors.append("SUMMARY_TEMPERATURE must be between 0 and 2.")

    return errors


settings = Settings()
