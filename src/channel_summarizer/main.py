"""Wires the collaborators together and runs the bot until interrupted."""

import asyncio
import signal
import sys

from channel_summarizer.channels.telegram import TelegramChannel
from channel_summarizer.collector import Collector
from channel_summarizer.config import (
    create_moderation_client,
    create_summary_chat_model,
    settings,
    validate_config,
)
from channel_summarizer.logging import (
    configure_logging,
    format_log_context,
    get_logger,
    shutdown_logging,
)
from channel_summarizer.session import create_session_store
from channel_summarizer.storage import Allowlist, AuditLog, DatabaseManager
from channel_summarizer.summarizer import (
    LangChainSummaryModel,
    OpenAIModerator,
    SummarizationPipeline,
)

logger = get_logger(__name__)


def config_verify() -> int:
    """Verify configuration loading and print status.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    print("Channel Summarizer Configuration Verification")
    print("=" * 40)

    print(f"✓ Session storage: {settings.SESSION_STORAGE} (ttl={settings.SESSION_TTL_SECONDS}s)")
    if settings.SESSION_STORAGE == "redis":
        print(f"✓ Redis: {settings.REDIS_URL}")
    print(f"✓ Summary model: {settings.SUMMARY_MODEL} (max_tokens={settings.SUMMARY_MAX_TOKENS})")
    print(f"✓ Moderation: {'on' if settings.MODERATION_ENABLED else 'off'}")
    print(f"✓ User limitation: {'on' if settings.HAS_USER_LIMITATION else 'off'}")
    print(f"✓ PostgreSQL: {settings.POSTGRES_HOST}:{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}")

    errors = validate_config(settings)
    print("=" * 40)
    if errors:
        print(f"\n❌ Verification failed with {len(errors)} error(s)")
        for error in errors:
            print(f"  - {error}")
        return 1

    print("\n✅ All checks passed!")
    return 0


async def main() -> None:
    """Start the bot."""
    configure_logging()

    errors = validate_config(settings)
    if errors:
        for error in errors:
            logger.error(f'{format_log_context("config_invalid", component="startup")} {error}')
        sys.exit(1)

    store = create_session_store(settings)
    db = DatabaseManager(settings.POSTGRES_URL, max_size=settings.POSTGRES_POOL_MAX_SIZE)
    await db.initialize()
    audit = AuditLog(db)
    allowlist = Allowlist(db)

    model = LangChainSummaryModel(
        create_summary_chat_model(settings),
        timeout=settings.SUMMARY_TIMEOUT_SECONDS,
    )
    moderator = (
        OpenAIModerator(create_moderation_client(settings), settings.MODERATION_MODEL)
        if settings.MODERATION_ENABLED
        else None
    )

    collector = Collector(store, access=allowlist if settings.HAS_USER_LIMITATION else None)
    pipeline = SummarizationPipeline(store, model, audit=audit, moderator=moderator)
    channel = TelegramChannel(
        settings.TELEGRAM_BOT_TOKEN,
        collector,
        pipeline,
        audit=audit,
        allowlist=allowlist,
        user_limitation=settings.HAS_USER_LIMITATION,
        history_limit=settings.HISTORY_LIMIT,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    try:
        await channel.start()
        logger.info(f'{format_log_context("system", component="startup")} bot_running')
        await stop_event.wait()
    finally:
        logger.info(f'{format_log_context("system", component="shutdown")} stopping')
        await channel.stop()
        if moderator is not None:
            await moderator.close()
        await model.close()
        await store.close()
        await db.close()
        shutdown_logging()
