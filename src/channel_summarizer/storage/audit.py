"""Append-only log of completed summarizations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from channel_summarizer.logging import format_log_context, get_logger

if TYPE_CHECKING:
    from channel_summarizer.storage.database import DatabaseManager

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuditRecord:
    """One completed summarization.

    Attributes:
        user_id: Telegram user who requested the summary.
        target_channel_id: Channel the batch was collected from.
        tokens_spent: Total tokens reported by the model call (0 if unknown).
        date: Unix timestamp in seconds.
    """

    user_id: int
    target_channel_id: int
    tokens_spent: int
    date: int


class AuditLog:
    """Audit records stored in the `history` table."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def record(self, entry: AuditRecord) -> None:
        async with self.db.connection() as conn:
            await conn.execute(
                """INSERT INTO history (user_id, target_channel_id, token_spent, date)
                   VALUES ($1, $2, $3, $4)""",
                entry.user_id, entry.target_channel_id, entry.tokens_spent, entry.date,
            )
        logger.info(
            f'{format_log_context("audit_recorded", component="audit", user=entry.user_id, source=entry.target_channel_id, tokens=entry.tokens_spent)}'
        )

    async def history(self, user_id: int, limit: int = 5) -> list[AuditRecord]:
        """Most recent records of a user, newest first."""
        async with self.db.connection() as conn:
            rows = await conn.fetch(
                """SELECT user_id, target_channel_id, token_spent, date
                   FROM history
                   WHERE user_id = $1
                   ORDER BY date DESC, id DESC
                   LIMIT $2""",
                user_id, limit,
            )

        return [
            AuditRecord(
                user_id=row["user_id"],
                target_channel_id=row["target_channel_id"],
                tokens_spent=row["token_spent"],
                date=row["date"],
            )
            for row in rows
        ]

    async def total_tokens(self) -> int:
        async with self.db.connection() as conn:
            total = await conn.fetchval("SELECT COALESCE(SUM(token_spent), 0) FROM history")
        return int(total or 0)
