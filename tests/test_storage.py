"""Tests for the audit log and allowlist on a mocked asyncpg connection."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from channel_summarizer.storage import Allowlist, AuditLog, AuditRecord


def make_db(conn):
    db = MagicMock()

    @asynccontextmanager
    async def acquire():
        yield conn

    db.connection = acquire
    db.transaction = acquire
    return db


@pytest.fixture
def conn():
    connection = MagicMock()
    connection.execute = AsyncMock()
    connection.fetch = AsyncMock(return_value=[])
    connection.fetchrow = AsyncMock(return_value=None)
    connection.fetchval = AsyncMock(return_value=0)
    return connection


class TestAuditLog:
    @pytest.mark.asyncio
    async def test_record_inserts_row(self, conn):
        audit = AuditLog(make_db(conn))

        await audit.record(AuditRecord(user_id=1, target_channel_id=-1001, tokens_spent=50, date=1700000000))

        query, *args = conn.execute.await_args.args
        assert "INSERT INTO history" in query
        assert args == [1, -1001, 50, 1700000000]

    @pytest.mark.asyncio
    async def test_history_maps_rows_newest_first(self, conn):
        conn.fetch.return_value = [
            {"user_id": 1, "target_channel_id": -1001, "token_spent": 30, "date": 20},
            {"user_id": 1, "target_channel_id": -1002, "token_spent": 10, "date": 10},
        ]
        audit = AuditLog(make_db(conn))

        records = await audit.history(1, limit=5)

        assert records == [
            AuditRecord(user_id=1, target_channel_id=-1001, tokens_spent=30, date=20),
            AuditRecord(user_id=1, target_channel_id=-1002, tokens_spent=10, date=10),
        ]
        query, user_id, limit = conn.fetch.await_args.args
        assert "ORDER BY date DESC" in query
        assert (user_id, limit) == (1, 5)

    @pytest.mark.asyncio
    async def test_total_tokens(self, conn):
        conn.fetchval.return_value = 1234

        assert await AuditLog(make_db(conn)).total_tokens() == 1234


class TestAllowlist:
    @pytest.mark.asyncio
    async def test_unknown_user_is_not_authorized(self, conn):
        allowlist = Allowlist(make_db(conn))

        assert await allowlist.is_authorized(1) is False
        assert await allowlist.can_view_logs(1) is False

    @pytest.mark.asyncio
    async def test_known_user_is_authorized(self, conn):
        conn.fetchrow.return_value = {"user_id": 1}

        assert await Allowlist(make_db(conn)).is_authorized(1) is True

    @pytest.mark.asyncio
    async def test_first_user_is_granted(self, conn):
        conn.fetchval.return_value = 0

        added = await Allowlist(make_db(conn)).grant_first_user(7)

        assert added is True
        queries = [call.args[0] for call in conn.execute.await_args_list]
        assert queries[0].startswith("LOCK TABLE user_whitelist")
        assert "INSERT INTO user_whitelist" in queries[1]
        assert conn.execute.await_args_list[1].args[1] == 7

    @pytest.mark.asyncio
    async def test_seeded_allowlist_is_left_alone(self, conn):
        conn.fetchval.return_value = 1

        added = await Allowlist(make_db(conn)).grant_first_user(7)

        assert added is False
        assert conn.execute.await_count == 1
