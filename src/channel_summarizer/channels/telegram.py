"""Telegram channel implementation using python-telegram-bot."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from loguru import logger
from telegram import BotCommand, Message, MessageOriginChannel, ReplyParameters, Update
from telegram.constants import ParseMode
from telegram.error import BadRequest, TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from channel_summarizer import __version__, project_urls
from channel_summarizer.channels.formatters import MessageFormatter
from channel_summarizer.collector import (
    Collector,
    MessageCandidate,
    MessageOrigin,
    OriginKind,
)
from channel_summarizer.errors import SummarizerError, SummaryNotDelivered, UnexpectedFailure
from channel_summarizer.logging import format_log_context, truncate_log_text
from channel_summarizer.session import ChannelInfo
from channel_summarizer.summarizer import SummarizationPipeline

if TYPE_CHECKING:
    from telegram import Bot

    from channel_summarizer.storage import Allowlist, AuditLog

PRIVATE_ONLY_NOTICE = "Please send me a private message to use this bot."
SUMMARIZING_PLACEHOLDER = "Summarizing messages..."

BOT_COMMANDS = [
    BotCommand("start", "Start the bot"),
    BotCommand("finish", "Finish sending messages"),
    BotCommand("cancel", "Cancel current action"),
    BotCommand("log", "View log"),
    BotCommand("init", "Init bot"),
    BotCommand("help", "Get help"),
]


def candidate_from_message(message: Message) -> MessageCandidate:
    """Convert a Telegram message into a collector candidate."""
    text = message.text or message.caption or None
    origin = message.forward_origin
    if origin is None:
        return MessageCandidate(text=text, origin=None)

    if isinstance(origin, MessageOriginChannel):
        return MessageCandidate(
            text=text,
            origin=MessageOrigin(
                kind=OriginKind.CHANNEL,
                message_id=origin.message_id,
                chat_id=origin.chat.id,
                chat_title=origin.chat.title or "",
            ),
        )

    try:
        kind = OriginKind(origin.type)
    except ValueError:
        kind = OriginKind.USER
    return MessageCandidate(text=text, origin=MessageOrigin(kind=kind))


def make_channel_lookup(bot: Bot) -> Callable[[MessageOrigin], Awaitable[ChannelInfo]]:
    """Build the chat-info lookup used when a session locks its channel."""

    async def lookup(origin: MessageOrigin) -> ChannelInfo:
        try:
            chat = await bot.get_chat(origin.chat_id)
        except TelegramError as e:
            logger.warning(
                f'{format_log_context("get_chat_failed", channel="telegram", source=origin.chat_id)} '
                f'error="{e}" using forward origin title'
            )
            return ChannelInfo(id=origin.chat_id, title=origin.chat_title)
        return ChannelInfo(
            id=chat.id,
            title=chat.title or origin.chat_title,
            description=getattr(chat, "description", None) or "",
        )

    return lookup


def command_boundary(handler):
    """Convert collection/summary failures into a single reply."""

    @functools.wraps(handler)
    async def wrapper(self: TelegramChannel, update: Update, context: ContextTypes.DEFAULT_TYPE):
        message = update.effective_message
        if message is None or update.effective_user is None:
            return
        try:
            await handler(self, update, context)
        except SummarizerError as e:
            logger.info(
                f'{format_log_context("rejected", channel="telegram", user=update.effective_user.id, message_id=message.message_id)} '
                f"error={type(e).__name__}"
            )
            await self._reply(context.bot, message, e.user_message)
        except Exception:
            logger.exception(
                f'{format_log_context("unexpected_error", channel="telegram", user=update.effective_user.id, message_id=message.message_id)}'
            )
            await self._reply(context.bot, message, UnexpectedFailure.user_message)

    return wrapper


class TelegramChannel:
    """
    Telegram bot front end.

    Handles:
    - /start, /finish, /cancel for the collection session
    - forwarded channel messages while collecting
    - /init, /log for allowlist seeding and usage history
    - /help (and /about, /settings, /privacy)

    Attributes:
        token: Telegram bot token from BotFather.
        application: python-telegram-bot Application instance.
    """

    def __init__(
        self,
        token: str,
        collector: Collector,
        pipeline: SummarizationPipeline,
        audit: AuditLog | None = None,
        allowlist: Allowlist | None = None,
        user_limitation: bool = False,
        history_limit: int = 5,
    ) -> None:
        if not token:
            raise ValueError("Telegram bot token not provided")

        self.token = token
        self.collector = collector
        self.pipeline = pipeline
        self.audit = audit
        self.allowlist = allowlist
        self.user_limitation = user_limitation
        self.history_limit = history_limit
        self.formatter = MessageFormatter()
        self.application: Application | None = None

    def register_handlers(self, application: Application) -> None:
        private = filters.ChatType.PRIVATE

        # Commands outside private chats only get a notice
        application.add_handler(MessageHandler(filters.COMMAND & ~private, self._private_only))

        application.add_handler(
            CommandHandler(["help", "about", "settings", "privacy"], self._help_command, filters=private)
        )
        application.add_handler(CommandHandler("start", self._start_command, filters=private))
        application.add_handler(CommandHandler("finish", self._finish_command, filters=private))
        application.add_handler(CommandHandler("cancel", self._cancel_command, filters=private))
        application.add_handler(CommandHandler("init", self._init_command, filters=private))
        application.add_handler(CommandHandler("log", self._log_command, filters=private))
        application.add_handler(MessageHandler(filters.FORWARDED & private, self._forward_handler))
        application.add_error_handler(self._error_handler)

    async def start(self) -> None:
        """Start the Telegram bot with polling."""
        self.application = Application.builder().token(self.token).build()
        self.register_handlers(self.application)

        logger.info(f'{format_log_context("system", component="telegram")} initializing')
        await self.application.initialize()
        if self.collector.channel_lookup is None:
            self.collector.channel_lookup = make_channel_lookup(self.application.bot)
        await self.application.bot.set_my_commands(BOT_COMMANDS)
        await self.application.start()
        await self.application.updater.start_polling(
            allowed_updates=[Update.MESSAGE],
            drop_pending_updates=True,
        )
        logger.info(f'{format_log_context("system", component="telegram")} polling_started')

    async def stop(self) -> None:
        """Stop the Telegram bot gracefully."""
        if self.application:
            if self.application.updater and self.application.updater.running:
                await self.application.updater.stop()
            if self.application.running:
                await self.application.stop()
            await self.application.shutdown()

    # ==================== Replies ====================

    async def _reply(
        self,
        bot: Bot,
        message: Message,
        text: str,
        parse_mode: str | None = None,
        reply_to: int | None = None,
    ) -> Message | None:
        """Reply in the message's chat, threaded to `reply_to` (default: the message)."""
        kwargs: dict[str, Any] = {
            "chat_id": message.chat_id,
            "reply_parameters": ReplyParameters(
                message_id=reply_to or message.message_id,
                allow_sending_without_reply=True,
            ),
        }
        try:
            return await bot.send_message(text=text, parse_mode=parse_mode, **kwargs)
        except BadRequest as e:
            if parse_mode and "can't parse entities" in str(e).lower():
                logger.warning(
                    f'{format_log_context("parse_failed", channel="telegram", message_id=message.message_id)} '
                    "retrying as plain text"
                )
                return await bot.send_message(text=self.formatter.strip_markup(text), **kwargs)
            raise

    async def _delete(self, bot: Bot, message: Message | None) -> None:
        if message is None:
            return
        try:
            await bot.delete_message(chat_id=message.chat_id, message_id=message.message_id)
        except TelegramError as e:
            logger.warning(
                f'{format_log_context("delete_failed", channel="telegram", message_id=message.message_id)} error="{e}"'
            )

    # ==================== Handlers ====================

    async def _private_only(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message is None:
            return
        await self._reply(context.bot, message, PRIVATE_ONLY_NOTICE)

    @command_boundary
    async def _help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        urls = project_urls()
        text = self.formatter.format_help(
            __version__,
            repository=urls.get("repository", ""),
            homepage=urls.get("homepage", ""),
            license=urls.get("license", ""),
        )
        await self._reply(context.bot, update.effective_message, text, parse_mode=ParseMode.HTML)

    @command_boundary
    async def _start_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.collector.start(update.effective_user.id)
        await self._reply(context.bot, update.effective_message, self.formatter.format_start())

    @command_boundary
    async def _cancel_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.collector.cancel(update.effective_user.id)
        await self._reply(context.bot, update.effective_message, "Action canceled.")

    @command_boundary
    async def _forward_handler(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        candidate = candidate_from_message(message)
        logger.info(
            f'{format_log_context("forward_received", channel="telegram", user=update.effective_user.id, message_id=message.message_id)} '
            f'text="{truncate_log_text(candidate.text, 80)}"'
        )
        result = await self.collector.submit(update.effective_user.id, candidate)
        await self._reply(
            context.bot,
            message,
            self.formatter.format_ack(result),
            parse_mode=ParseMode.HTML,
        )

    @command_boundary
    async def _finish_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        bot = context.bot
        placeholder: Message | None = None

        async def show_placeholder() -> None:
            nonlocal placeholder
            placeholder = await self._reply(bot, message, SUMMARIZING_PLACEHOLDER)

        # Replies go out before the placeholder is removed
        try:
            try:
                result = await self.pipeline.finish(update.effective_user.id, on_start=show_placeholder)
            except SummarizerError as e:
                await self._reply(
                    bot,
                    message,
                    e.user_message,
                    reply_to=placeholder.message_id if placeholder else None,
                )
                return

            reply_to = placeholder.message_id if placeholder else None
            await self._send_summary(bot, message, result.text, reply_to)
        finally:
            await self._delete(bot, placeholder)

    async def _send_summary(self, bot: Bot, message: Message, text: str, reply_to: int | None) -> None:
        """Send the rendered summary chunk by chunk.

        The batch is already consumed at this point, so a chunk Telegram fails
        to deliver is retried once as plain text before giving up.

        Raises:
            SummaryNotDelivered: A chunk could not be sent either way.
        """
        for chunk in self.formatter.split_message(text):
            try:
                await self._reply(bot, message, chunk, parse_mode=ParseMode.HTML, reply_to=reply_to)
                continue
            except TelegramError as e:
                logger.warning(
                    f'{format_log_context("summary_send_failed", channel="telegram", message_id=message.message_id)} '
                    f'error="{e}" retrying as plain text'
                )
            try:
                await self._reply(bot, message, self.formatter.strip_markup(chunk), reply_to=reply_to)
            except TelegramError as e:
                raise SummaryNotDelivered() from e

    @command_boundary
    async def _init_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not self.user_limitation or self.allowlist is None:
            await self._reply(context.bot, update.effective_message, "User limitation is disabled.")
            return
        if await self.allowlist.grant_first_user(update.effective_user.id):
            await self._reply(context.bot, update.effective_message, "User added to whitelist")
        else:
            await self._reply(context.bot, update.effective_message, "Whitelist already initialized.")

    @command_boundary
    async def _log_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user_id = update.effective_user.id
        if (
            self.allowlist is None
            or self.audit is None
            or not await self.allowlist.can_view_logs(user_id)
        ):
            await self._reply(
                context.bot, update.effective_message, "You do not have permission to view logs."
            )
            return

        records = await self.audit.history(user_id, self.history_limit)
        total = await self.audit.total_tokens()
        await self._reply(
            context.bot,
            update.effective_message,
            self.formatter.format_history(records, total),
            parse_mode=ParseMode.HTML,
        )

    async def _error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Log Telegram errors with context."""
        update_id = getattr(update, "update_id", None)
        user_id = None
        if isinstance(update, Update) and update.effective_user:
            user_id = update.effective_user.id
        ctx = format_log_context("system", component="telegram", user=user_id, update_id=update_id)
        logger.opt(exception=context.error).error(f"{ctx} unhandled exception")
