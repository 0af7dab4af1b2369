"""Summarization pipeline: prompt, model call, validation, rendering."""

from channel_summarizer.summarizer.model import (
    ContextLengthExceeded,
    LangChainSummaryModel,
    ModelCallFailed,
    ModelReply,
    SummaryModel,
)
from channel_summarizer.summarizer.moderation import Moderator, OpenAIModerator
from channel_summarizer.summarizer.pipeline import SummarizationPipeline, SummaryResult
from channel_summarizer.summarizer.render import escape_markup, message_link, render_summary

__all__ = [
    "ContextLengthExceeded",
    "LangChainSummaryModel",
    "ModelCallFailed",
    "ModelReply",
    "Moderator",
    "OpenAIModerator",
    "SummarizationPipeline",
    "SummaryModel",
    "SummaryResult",
    "escape_markup",
    "message_link",
    "render_summary",
]
