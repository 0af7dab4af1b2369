"""Telegram reply texts (HTML parse mode)."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from channel_summarizer.summarizer.render import channel_link_id, escape_markup, message_link

if TYPE_CHECKING:
    from channel_summarizer.collector import SubmitResult
    from channel_summarizer.storage.audit import AuditRecord

# Telegram message limit is 4096 characters
MAX_MESSAGE_LENGTH = 4096


class MessageFormatter:
    """Format bot replies for Telegram display."""

    @staticmethod
    def format_help(version: str, repository: str = "", homepage: str = "", license: str = "") -> str:
        about = [f"Version <code>{escape_markup(version)}</code>"]
        if repository:
            line = f"Get code from <code>{escape_markup(repository)}</code>"
            if license:
                line += f", <code>{escape_markup(license)}</code> license"
            about.append(line)
        if homepage:
            about.append(f'<a href="{escape_markup(homepage)}">Learn more</a>')

        return (
            "👋 Hi, I can summarize some messages of a channel.\n\n"
            "<b>Usage</b>\n"
            "<blockquote>1. Send me a private message /start\n"
            "2. Forward messages from a channel to me. All forwarded messages must come from "
            "the channel you want to summarize.\n"
            "3. Send me /finish to stop sending messages and summarize the messages I have received.\n"
            "Send /cancel at any time to start over.</blockquote>\n\n"
            "<b>About the bot</b>\n"
            f"<blockquote>{chr(10).join(about)}</blockquote>"
        )

    @staticmethod
    def format_start() -> str:
        return (
            "Please forward messages from the channel you want to summarize. "
            "The first forwarded message decides which channel is summarized."
        )

    @staticmethod
    def format_ack(result: SubmitResult) -> str:
        if result.first:
            title = escape_markup(result.channel.title or str(result.channel.id))
            link = message_link(result.channel.id, result.message_id)
            return (
                "Message received and channel information saved.\n\n"
                f'Channel: <a href="{link}">{title}</a>\n\n'
                "Send more messages to summarize or send /finish."
            )
        return "Message received.\n\nSend more messages to summarize or send /finish."

    @staticmethod
    def format_history(records: list[AuditRecord], total_tokens: int) -> str:
        entries = []
        for record in records:
            date = datetime.fromtimestamp(record.date, tz=timezone.utc)
            link = f"https://t.me/c/{channel_link_id(record.target_channel_id)}"
            entries.append(
                f'Channel: <a href="{link}">{record.target_channel_id}</a>\n'
                f"Date: {date.isoformat()}\n"
                f"Token spent: {record.tokens_spent}"
            )
        shown = sum(record.tokens_spent for record in records)
        body = "\n\n".join(entries) if entries else "No summaries yet."
        return f"History:\n\n{body}\n\nTotal token usage: {shown}/{total_tokens}"

    @staticmethod
    def strip_markup(text: str) -> str:
        """Plain-text fallback for a reply Telegram refused to parse."""
        text = re.sub(r"<[^>]+>", "", text)
        return (
            text.replace("&lt;", "<")
            .replace("&gt;", ">")
            .replace("&quot;", '"')
            .replace("&#x27;", "'")
            .replace("&amp;", "&")
        )

    @staticmethod
    def split_message(content: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
        """Split a long reply into chunks, preferring blank-line then newline boundaries."""
        if len(content) <= limit:
            return [content]

        chunks: list[str] = []
        current = ""
        for block in content.split("\n\n"):
            candidate = f"{current}\n\n{block}" if current else block
            if len(candidate) <= limit:
                current = candidate
                continue
            if current:
                chunks.append(current)
                current = ""
            if len(block) <= limit:
                current = block
                continue
            # A single block is too long: fall back to line boundaries
            for line in block.split("\n"):
                candidate = f"{current}\n{line}" if current else line
                if len(candidate) <= limit:
                    current = candidate
                    continue
                if current:
                    chunks.append(current)
                if len(line) > limit:
                    for i in range(0, len(line), limit):
                        chunks.append(line[i:i + limit])
                    current = ""
                else:
                    current = line
        if current:
            chunks.append(current)
        return [chunk for chunk in chunks if chunk]
