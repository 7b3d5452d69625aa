"""Integration tests for ReadWriteConnectionPool against a real PostgreSQL.

The container's main database plays the writer; a second database on the same
server plays a healthy reader, and a reader on a closed port plays a dead
replica. This exercises real asyncpg handles, probes and failover.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import asyncpg
import pytest

from rwsplit.core.enums import HealthCheckStatus
from rwsplit.exceptions import UnavailableError
from rwsplit.infrastructure.postgres import AsyncpgConnection, DriverSettings
from rwsplit.pool import ConnectionPoolConfig, HealthCheckSettings, PoolStats, ReadWriteConnectionPool

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from rwsplit.pool import TargetSettings

REPLICA_DB = "test_db_replica"


@pytest.fixture
async def replica_target(writer_target: TargetSettings) -> TargetSettings:
    conn = await asyncpg.connect(writer_target.dsn)
    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", REPLICA_DB)
        if not exists:
            await conn.execute(f"CREATE DATABASE {REPLICA_DB}")
    finally:
        await conn.close()
    return writer_target.model_copy(update={"database": REPLICA_DB})


@pytest.fixture
def dead_target(writer_target: TargetSettings) -> TargetSettings:
    return writer_target.for_replica("127.0.0.1", port=1)


def _config(writer: TargetSettings, *readers: TargetSettings) -> ConnectionPoolConfig:
    return ConnectionPoolConfig(
        writer=writer,
        readers=readers,
        health_check=HealthCheckSettings(timeout_s=5.0),
        driver=DriverSettings(min_size=1, max_size=2, connect_timeout=2.0),
    )


@pytest.fixture
async def pool(
    writer_target: TargetSettings, replica_target: TargetSettings, dead_target: TargetSettings
) -> AsyncIterator[ReadWriteConnectionPool]:
    async with ReadWriteConnectionPool.from_config(_config(writer_target, dead_target, replica_target)) as p:
        yield p


@pytest.mark.asyncio
@pytest.mark.integration
class TestReadWriteRouting:
    async def test_writer_executes_queries(self, pool: ReadWriteConnectionPool) -> None:
        writer = await pool.aget_writer()

        assert isinstance(writer, AsyncpgConnection)
        assert await writer.afetchval("SELECT current_database()") == "test_db"

    async def test_dead_reader_fails_over_to_live_reader(self, pool: ReadWriteConnectionPool) -> None:
        reader = await pool.aget_reader()

        assert isinstance(reader, AsyncpgConnection)
        assert await reader.afetchval("SELECT current_database()") == REPLICA_DB
        assert pool.get_stats() == PoolStats(reads=1, writes=0, failovers=1, readers=2)

    async def test_all_readers_dead_falls_back_to_writer(
        self, writer_target: TargetSettings, dead_target: TargetSettings
    ) -> None:
        async with ReadWriteConnectionPool.from_config(_config(writer_target, dead_target)) as pool:
            reader = await pool.aget_reader()

            assert reader.target == writer_target
            assert pool.get_stats() == PoolStats(reads=1, writes=0, failovers=1, readers=1)

    async def test_dead_writer_is_unavailable(self, dead_target: TargetSettings) -> None:
        async with ReadWriteConnectionPool.from_config(_config(dead_target)) as pool:
            with pytest.raises(UnavailableError):
                await pool.aget_writer()

            assert pool.get_stats() == PoolStats(readers=0)

    async def test_cluster_health_reports_degraded(self, pool: ReadWriteConnectionPool) -> None:
        result = await pool.ahealth_check()

        assert result.status == HealthCheckStatus.DEGRADED
        assert result.healthy_reader_count == 1
        assert result.is_operational

    async def test_aclose_closes_asyncpg_pools(self, pool: ReadWriteConnectionPool) -> None:
        writer = await pool.aget_writer()
        assert writer.is_open

        await pool.aclose()

        assert not writer.is_open


@pytest.mark.asyncio
@pytest.mark.integration
class TestQueryHelpers:
    async def test_write_then_read_through_helpers(self, pool: ReadWriteConnectionPool) -> None:
        writer = await pool.aget_writer()
        assert isinstance(writer, AsyncpgConnection)

        await writer.aexecute("DROP TABLE IF EXISTS rw_users")
        status = await writer.aexecute("CREATE TABLE rw_users (id INT PRIMARY KEY, name TEXT NOT NULL)")
        await writer.aexecutemany("INSERT INTO rw_users (id, name) VALUES ($1, $2)", [(1, "alice"), (2, "bob")])

        rows = await writer.afetch("SELECT id, name FROM rw_users ORDER BY id")
        row = await writer.afetchrow("SELECT name FROM rw_users WHERE id = $1", 2)
        missing = await writer.afetchrow("SELECT name FROM rw_users WHERE id = $1", 99)

        assert status == "CREATE TABLE"
        assert [(r["id"], r["name"]) for r in rows] == [(1, "alice"), (2, "bob")]
        assert row is not None
        assert row["name"] == "bob"
        assert missing is None

    async def test_aacquire_yields_pooled_connection(self, pool: ReadWriteConnectionPool) -> None:
        writer = await pool.aget_writer()
        assert isinstance(writer, AsyncpgConnection)

        async with writer.aacquire() as conn:
            assert await conn.fetchval("SELECT 1") == 1
