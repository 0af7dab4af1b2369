"""Error taxonomy for collection and summarization.

Every error carries the reply shown to the user and whether the session must
be cleared when it ends a `/finish` attempt. Handlers convert them into a
single reply; none of them should crash the bot.
"""


class SummarizerError(Exception):
    """Base class for all user-facing failures."""

    user_message = "Unexpected error. Please try again later."
    clears_session = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class Unauthorized(SummarizerError):
    user_message = "Sorry, you are not allowed to use this bot."


class NoActiveSession(SummarizerError):
    user_message = "Please send me /start to start sending messages."


class UnsupportedContent(SummarizerError):
    user_message = "Currently only text messages or messages with captions are supported."


class InvalidOrigin(SummarizerError):
    user_message = "The message should be from a channel."


class ChannelMismatch(SummarizerError):
    user_message = "The message should be from the same channel."


class EmptyBatch(SummarizerError):
    user_message = (
        "No messages received. Please forward messages from the channel you want to summarize."
    )


class BatchTooLarge(SummarizerError):
    user_message = "Error: The messages are too long. Please start over with fewer messages."
    clears_session = True


class ModelUnavailable(SummarizerError):
    user_message = (
        "Error: The summary service is unavailable right now. "
        "Your messages are kept, send /finish to try again."
    )


class MalformedResponse(SummarizerError):
    user_message = "Error: Response format is incorrect."
    clears_session = True


class EmptySummary(SummarizerError):
    """Nothing left to summarize.

    Raised when the validated reply has no groups, and also before the model
    call when moderation excluded every message. The flagged messages will not
    be summarized on a retry either, so the session is cleared in both cases.
    """

    user_message = "AI have not generated any summary."
    clears_session = True


class SummaryNotDelivered(SummarizerError):
    """The summary was produced but Telegram refused every attempt to send it."""

    user_message = (
        "Error: The summary could not be delivered. "
        "Your messages were already processed, send /start to begin a new batch."
    )


class UnexpectedFailure(SummarizerError):
    """Wraps any collaborator failure outside the anticipated set."""


__all__ = [
    "SummarizerError",
    "Unauthorized",
    "NoActiveSession",
    "UnsupportedContent",
    "InvalidOrigin",
    "ChannelMismatch",
    "EmptyBatch",
    "BatchTooLarge",
    "ModelUnavailable",
    "MalformedResponse",
    "EmptySummary",
    "SummaryNotDelivered",
    "UnexpectedFailure",
]
