"""Chat transport front ends."""

__all__ = ["TelegramChannel", "MessageFormatter"]


def __getattr__(name: str):
    """Lazy import so importing the formatter does not pull in the whole bot."""
    if name == "TelegramChannel":
        from channel_summarizer.channels.telegram import TelegramChannel
        return TelegramChannel
    elif name == "MessageFormatter":
        from channel_summarizer.channels.formatters import MessageFormatter
        return MessageFormatter

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
