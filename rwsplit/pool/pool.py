"""Read/write splitting connection pool.

Writes go to the single writer. Reads are spread across the readers by the
configured load balancing strategy, failing over reader by reader and finally
to the writer. Connections are opened lazily on first use and health checked
before they are handed out.

Accounting follows the endpoint class actually used: with no readers
configured every read is served by the writer and counted as a write. A read
that falls back to the writer after all readers failed is still a read, plus
one failover.

Usage
-----
>>> config = ConnectionPoolConfig.with_replica_hosts(
...     TargetSettings(host="primary.db.com", user="app"),
...     ["replica-1.db.com", "replica-2.db.com"],
... )
>>> async with ReadWriteConnectionPool.from_config(config) as pool:
...     writer = await pool.aget_writer()
...     await writer.aexecute("INSERT INTO users (name) VALUES ($1)", "Alice")
...     reader = await pool.aget_reader()
...     rows = await reader.afetch("SELECT * FROM users")
...     pool.get_stats()
PoolStats(reads=1, writes=1, failovers=0, readers=2)
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import TYPE_CHECKING, Self

from ..core.enums import HealthCheckStatus, LoadBalancingStrategy, Operation, StatKind
from ..exceptions import TargetConnectionError, UnavailableError
from ..infrastructure.postgres.connection import AsyncpgConnection
from ..logger import get_logger
from .balancer import LoadBalancer
from .factory import ConnectionFactory
from .failover import FailoverCoordinator
from .health import ClusterHealthResult, HealthChecker, TargetHealthInfo, TargetRole
from .stats import PoolStats, StatsCollector

if TYPE_CHECKING:
    import random
    import types

    from .config import ConnectionPoolConfig, TargetSettings
    from .connection import Connector, DbConnection

logger = get_logger(__name__)


class ReadWriteConnectionPool:
    """Hands out writer and reader connections for a primary/replica topology.

    Parameters
    ----------
    config
        Topology, strategy and policies. Shared read-only for the pool's lifetime.
    connector
        Builds an unopened handle for a target. Defaults to `AsyncpgConnection`.
    rng
        Random source for the random and weighted strategies.

    Examples
    --------
    >>> pool = ReadWriteConnectionPool(config)
    >>> reader = await pool.aget_reader()
    >>> pool.get_stats().model_dump()
    {'reads': 1, 'writes': 0, 'failovers': 0, 'readers': 2}
    """

    __slots__ = ("_balancer", "_checker", "_config", "_coordinator", "_factory", "_stats")

    def __init__(
        self,
        config: ConnectionPoolConfig,
        connector: Connector | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._factory = ConnectionFactory(
            connector or partial(AsyncpgConnection, driver=config.driver),
            connect_retry=config.connect_retry,
        )
        self._checker = HealthChecker(config.health_check)
        self._coordinator = FailoverCoordinator(self._factory, self._checker)
        self._balancer = LoadBalancer(config.strategy, rng=rng)
        self._stats = StatsCollector(readers=config.reader_count)

    @classmethod
    def from_config(cls, config: ConnectionPoolConfig, connector: Connector | None = None) -> Self:
        return cls(config, connector=connector)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if exc_type is not None and exc_val is not None:
            logger.error(
                "ReadWriteConnectionPool exiting with exception",
                exc_type=exc_type.__name__,
                exc_val=str(exc_val),
            )
        await self.aclose()

    @property
    def config(self) -> ConnectionPoolConfig:
        return self._config

    @property
    def strategy(self) -> LoadBalancingStrategy:
        return self._config.strategy

    @property
    def reader_count(self) -> int:
        return self._config.reader_count

    @property
    def has_readers(self) -> bool:
        return self._config.reader_count > 0

    @property
    def balancer(self) -> LoadBalancer:
        return self._balancer

    @property
    def factory(self) -> ConnectionFactory:
        return self._factory

    async def aget_writer(self) -> DbConnection:
        """Return a healthy connection to the writer.

        Raises
        ------
        UnavailableError
            If the writer cannot be opened or fails its health check.
        """
        handle = await self._aacquire_writer()
        if handle is None:
            raise UnavailableError(Operation.WRITE, attempted=1)

        self._stats.increment(StatKind.WRITES)
        return handle

    async def aget_reader(self) -> DbConnection:
        """Return a healthy connection for a read.

        With no readers configured this is `aget_writer()`. Otherwise readers
        are tried in the order the load balancer chooses, then the writer.

        Raises
        ------
        UnavailableError
            If every reader and the writer fallback failed.
        """
        readers = self._config.readers
        if not readers:
            return await self.aget_writer()

        outcome = await self._coordinator.aselect(self._balancer.order(readers))
        if outcome.handle is not None:
            self._stats.increment(StatKind.READS)
            if outcome.failed_over:
                self._stats.increment(StatKind.FAILOVERS)
            return outcome.handle

        logger.warning("All readers unavailable, falling back to writer", readers=len(readers))
        handle = await self._aacquire_writer()
        if handle is None:
            raise UnavailableError(Operation.READ, attempted=len(readers) + 1)

        self._stats.increment(StatKind.READS)
        self._stats.increment(StatKind.FAILOVERS)
        return handle

    async def _aacquire_writer(self) -> DbConnection | None:
        outcome = await self._coordinator.aselect(
            (self._config.writer,),
            check=self._config.health_check.check_writer,
        )
        return outcome.handle

    def get_stats(self) -> PoolStats:
        return self._stats.snapshot()

    def reset_stats(self) -> None:
        self._stats.reset()

    async def ainvalidate(self, target: TargetSettings) -> None:
        """Drop the cached connection for ``target``; it reopens on next use."""
        self._checker.forget(target.address)
        await self._factory.ainvalidate(target)

    async def aclose(self) -> None:
        """Close every open connection. The pool reconnects lazily if used again."""
        await self._factory.aclose_all()
        self._checker.clear()
        logger.info("ReadWriteConnectionPool closed", strategy=str(self.strategy), readers=self.reader_count)

    async def ahealth_check(self) -> ClusterHealthResult:
        """Probe the writer and every reader concurrently.

        Does not touch statistics or rotation state.
        """
        writer, *readers = await asyncio.gather(
            self._atarget_health(self._config.writer, "writer"),
            *(self._atarget_health(target, "reader") for target in self._config.readers),
        )
        return ClusterHealthResult.from_targets(writer, tuple(readers))

    async def _atarget_health(self, target: TargetSettings, role: TargetRole) -> TargetHealthInfo:
        handle: DbConnection | None = None
        try:
            handle = await self._factory.aget_or_create(target)
            result = await self._checker.acheck(handle)
        except TargetConnectionError as e:
            if handle is not None:
                await self._factory.ainvalidate(target, handle)
            return TargetHealthInfo(role=role, address=target.address, status=HealthCheckStatus.UNHEALTHY, message=str(e))

        if not result.is_healthy():
            await self._factory.ainvalidate(target, handle)

        return TargetHealthInfo(
            role=role,
            address=target.address,
            status=result.status,
            latency_s=result.latency_s,
            message=result.message,
        )
