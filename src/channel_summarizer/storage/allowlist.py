"""User allowlist for access control."""

from __future__ import annotations

from typing import TYPE_CHECKING

from channel_summarizer.logging import format_log_context, get_logger

if TYPE_CHECKING:
    from channel_summarizer.storage.database import DatabaseManager

logger = get_logger(__name__)


class Allowlist:
    """Allowlisted users stored in the `user_whitelist` table."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def is_authorized(self, user_id: int) -> bool:
        async with self.db.connection() as conn:
            row = await conn.fetchrow(
                "SELECT user_id FROM user_whitelist WHERE user_id = $1", user_id
            )
        return row is not None

    async def can_view_logs(self, user_id: int) -> bool:
        async with self.db.connection() as conn:
            row = await conn.fetchrow(
                """SELECT user_id FROM user_whitelist
                   WHERE user_id = $1 AND can_promote_others""",
                user_id,
            )
        return row is not None

    async def grant_first_user(self, user_id: int) -> bool:
        """Seed the allowlist with `user_id` if, and only if, it is empty.

        Returns:
            True when the user was added.
        """
        async with self.db.transaction() as conn:
            # Serialize concurrent /init calls so only one can seed the table
            await conn.execute("LOCK TABLE user_whitelist IN EXCLUSIVE MODE")
            count = await conn.fetchval("SELECT COUNT(*) FROM user_whitelist")
            if count:
                return False
            await conn.execute(
                """INSERT INTO user_whitelist (user_id, can_promote_others)
                   VALUES ($1, TRUE)""",
                user_id,
            )
        logger.info(f'{format_log_context("allowlist_seeded", component="allowlist", user=user_id)}')
        return True
