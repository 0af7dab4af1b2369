"""Render validated summary groups for Telegram."""

import html
from collections.abc import Iterable
from typing import Literal

from telegram.constants import ParseMode
from telegram.helpers import escape_markdown

from channel_summarizer.summarizer.schema import SummaryGroup

Dialect = Literal["HTML", "Markdown", "MarkdownV2"]


def escape_markup(text: str, dialect: Dialect | ParseMode = ParseMode.HTML) -> str:
    """Escape user or model supplied text for the given Telegram parse mode."""
    dialect = ParseMode(dialect)
    if dialect is ParseMode.HTML:
        return html.escape(text, quote=True)
    if dialect is ParseMode.MARKDOWN:
        return escape_markdown(text, version=1)
    return escape_markdown(text, version=2)


def channel_link_id(channel_id: int) -> str:
    """Channel id as used in t.me/c/ links (without the -100 prefix)."""
    return str(channel_id).removeprefix("-100")


def message_link(channel_id: int, message_id: int | None = None) -> str:
    base = f"https://t.me/c/{channel_link_id(channel_id)}"
    if message_id is None:
        return base
    return f"{base}/{message_id}"


def render_group(group: SummaryGroup, channel_id: int) -> str:
    header = f"• <b>{escape_markup(group.title)}</b>"
    items = "\n".join(
        f'- <a href="{message_link(channel_id, item.id)}">{escape_markup(item.title)}</a>'
        for item in group.messages
    )
    return f"{header}\n\n{items}"


def render_summary(groups: Iterable[SummaryGroup], channel_id: int) -> str:
    """Render groups in input order, separated by a blank line (HTML parse mode)."""
    return "\n\n".join(render_group(group, channel_id) for group in groups)
