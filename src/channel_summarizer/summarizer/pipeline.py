"""Summarization pipeline triggered by /finish.

Stages (each returns a value or raises a typed error):

    drain -> moderate -> build prompt -> call model -> validate -> render

The session is cleared in exactly one place, `finish`, once the outcome is
known: on success, and on errors whose `clears_session` is set. Errors that
happen before the model has answered keep the batch so nothing is lost.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

from channel_summarizer.errors import (
    BatchTooLarge,
    EmptyBatch,
    EmptySummary,
    ModelUnavailable,
    NoActiveSession,
    SummarizerError,
)
from channel_summarizer.logging import format_log_context, get_logger
from channel_summarizer.session import ChannelInfo, CollectedMessage, Session, SessionStore
from channel_summarizer.summarizer.model import (
    ContextLengthExceeded,
    ModelCallFailed,
    SummaryModel,
)
from channel_summarizer.summarizer.moderation import Moderator, filter_flagged
from channel_summarizer.summarizer.prompts import build_payload, build_system_prompt
from channel_summarizer.summarizer.render import render_summary
from channel_summarizer.summarizer.schema import SummaryGroup, deduplicate_groups, parse_summary
from channel_summarizer.storage.audit import AuditRecord

logger = get_logger(__name__)


class AuditSink(Protocol):
    async def record(self, entry: AuditRecord) -> None: ...


@dataclass(frozen=True)
class SummaryResult:
    text: str
    groups: list[SummaryGroup]
    channel: ChannelInfo
    tokens_spent: int


class SummarizationPipeline:
    """Turns a user's collected batch into a rendered summary."""

    def __init__(
        self,
        store: SessionStore,
        model: SummaryModel,
        audit: AuditSink | None = None,
        moderator: Moderator | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.model = model
        self.audit = audit
        self.moderator = moderator
        self.clock = clock

    async def finish(
        self,
        user_id: int,
        on_start: Callable[[], Awaitable[None]] | None = None,
    ) -> SummaryResult:
        """Summarize and consume the user's batch.

        Args:
            user_id: Owner of the session.
            on_start: Awaited once the batch is known to be non-empty, before
                any external call (used to show a placeholder message).
        """
        session = await self._drain(user_id)
        if on_start is not None:
            await on_start()
        ctx = format_log_context("finish", component="summarizer", user=user_id, count=len(session.messages))
        logger.info(f"{ctx} started")

        try:
            result = await self._summarize(session)
        except SummarizerError as e:
            if e.clears_session:
                await self.store.clear(user_id)
            logger.info(f"{ctx} failed error={type(e).__name__} cleared={e.clears_session}")
            raise

        await self.store.clear(user_id)
        if self.audit is not None:
            entry = AuditRecord(
                user_id=user_id,
                target_channel_id=result.channel.id,
                tokens_spent=result.tokens_spent,
                date=int(self.clock()),
            )
            # The batch is already consumed; a failed audit write must not lose the summary
            try:
                await self.audit.record(entry)
            except Exception:
                logger.exception(f"{ctx} audit_record_failed entry={entry}")
        logger.info(f"{ctx} done groups={len(result.groups)} tokens={result.tokens_spent}")
        return result

    async def _drain(self, user_id: int) -> Session:
        session = await self.store.load(user_id)
        if not session.is_collecting:
            raise NoActiveSession()
        if not session.messages or session.channel is None:
            raise EmptyBatch()
        return session

    async def _moderate(self, session: Session) -> list[CollectedMessage]:
        messages = list(session.messages)
        if self.moderator is None:
            return messages
        try:
            return await filter_flagged(self.moderator, messages, user_id=session.user_id)
        except Exception as e:
            logger.error(
                f'{format_log_context("moderation_failed", component="summarizer", user=session.user_id)} '
                f"type={type(e).__name__} error={e}"
            )
            raise ModelUnavailable() from e

    async def _summarize(self, session: Session) -> SummaryResult:
        channel = session.channel
        messages = await self._moderate(session)
        if not messages:
            raise EmptySummary()

        system = build_system_prompt(channel)
        payload = build_payload(messages)

        try:
            reply = await self.model.complete(system, payload, session.user_id)
        except ContextLengthExceeded as e:
            raise BatchTooLarge() from e
        except ModelCallFailed as e:
            raise ModelUnavailable() from e

        groups = parse_summary(reply.text)
        groups = deduplicate_groups(groups, {m.message_id for m in messages})
        if not groups:
            raise EmptySummary()

        return SummaryResult(
            text=render_summary(groups, channel.id),
            groups=groups,
            channel=channel,
            tokens_spent=reply.total_tokens,
        )
