"""Factories for the OpenAI-backed collaborators (summary model, moderation)."""

import logging

from langchain_openai import ChatOpenAI
from openai import AsyncOpenAI

from channel_summarizer.config.settings import Settings, settings

logger = logging.getLogger(__name__)


def create_summary_chat_model(config: Settings | None = None) -> ChatOpenAI:
    """Create the chat model used for summarization.

    Retries are disabled: a failed call is reported to the user instead of
    being silently repeated.
    """
    config = config or settings
    model = ChatOpenAI(
        model=config.SUMMARY_MODEL,
        api_key=config.OPENAI_API_KEY,
        base_url=config.OPENAI_BASE_URL,
        max_tokens=config.SUMMARY_MAX_TOKENS,
        temperature=config.SUMMARY_TEMPERATURE,
        timeout=config.SUMMARY_TIMEOUT_SECONDS,
        max_retries=0,
        streaming=False,
    )
    logger.info(
        "Summary model created: %s (max_tokens=%s, temperature=%s)",
        config.SUMMARY_MODEL,
        config.SUMMARY_MAX_TOKENS,
        config.SUMMARY_TEMPERATURE,
    )
    return model


def create_moderation_client(config: Settings | None = None) -> AsyncOpenAI:
    """Create the raw OpenAI client used for the moderation endpoint."""
    config = config or settings
    return AsyncOpenAI(
        api_key=config.OPENAI_API_KEY,
        base_url=config.OPENAI_BASE_URL,
        timeout=config.SUMMARY_TIMEOUT_SECONDS,
        max_retries=0,
    )
