"""Configuration module for the channel summarizer."""

from channel_summarizer.config.settings import Settings, settings, validate_config
from channel_summarizer.config.llm_factory import create_summary_chat_model, create_moderation_client

__all__ = [
    "Settings",
    "settings",
    "validate_config",
    "create_summary_chat_model",
    "create_moderation_client",
]
