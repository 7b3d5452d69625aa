"""asyncpg-backed connection handle for one target.

Each handle owns a small asyncpg pool for its target. The read/write pool
decides which handle to return; callers then run queries on it.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import asyncpg
from asyncpg import Pool, Record

from ...exceptions import TargetConnectionError
from ...logger import get_logger
from .config import DriverSettings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Sequence

    from asyncpg.pool import PoolConnectionProxy

    from ...pool.config import TargetSettings

logger = get_logger(__name__)


class AsyncpgConnection:
    """Connection handle for a single PostgreSQL target.

    Examples
    --------
    >>> handle = AsyncpgConnection(TargetSettings(host="replica-1.db.com"))
    >>> await handle.aopen()
    >>> rows = await handle.afetch("SELECT * FROM users")
    >>> await handle.aclose()
    """

    __slots__ = ("_driver", "_open_lock", "_pool", "_target")

    def __init__(self, target: TargetSettings, driver: DriverSettings | None = None) -> None:
        self._target = target
        self._driver = driver or DriverSettings()
        self._pool: Pool[Record] | None = None
        self._open_lock = asyncio.Lock()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"AsyncpgConnection({self._target.address!r}, {state})"

    @property
    def target(self) -> TargetSettings:
        return self._target

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> Pool[Record]:
        """Access the underlying asyncpg pool.

        Raises
        ------
        TargetConnectionError
            If the handle has not been opened via `aopen()`.
        """
        if self._pool is None:
            raise TargetConnectionError(self._target.address, "connection not open")
        return self._pool

    async def aopen(self) -> None:
        """Create the asyncpg pool for this target. Idempotent.

        The lock keeps concurrent callers from creating two pools and
        orphaning one of them.
        """
        async with self._open_lock:
            if self._pool is not None:
                return

            params = self._driver.to_pool_params(self._target.dsn)
            self._pool = await asyncpg.create_pool(**params)
            logger.info(
                "asyncpg pool opened",
                address=self._target.address,
                min_size=self._driver.min_size,
                max_size=self._driver.max_size,
            )

    async def aclose(self) -> None:
        if self._pool is not None:
            pool, self._pool = self._pool, None
            await pool.close()
            logger.info("asyncpg pool closed", address=self._target.address)

    async def ais_healthy(self, query: str) -> bool:
        """Run the probe query on a pooled connection.

        Raises
        ------
        TargetConnectionError
            If the handle is not open, so there is nothing to probe.
        """
        pool = self.pool
        try:
            async with pool.acquire() as conn:
                await conn.fetchval(query)
        except (asyncpg.PostgresError, OSError, asyncpg.InterfaceError) as e:
            logger.debug("Probe query failed", address=self._target.address, error=str(e))
            return False
        return True

    @asynccontextmanager
    async def aacquire(self) -> AsyncIterator[PoolConnectionProxy[Record]]:
        async with self.pool.acquire() as conn:
            yield conn

    async def aexecute(self, query: str, *args: object, timeout: float | None = None) -> str:
        async with self.aacquire() as conn:
            return await conn.execute(query, *args, timeout=timeout)

    async def aexecutemany(self, query: str, args: Iterable[Sequence[object]], timeout: float | None = None) -> None:
        async with self.aacquire() as conn:
            await conn.executemany(query, args, timeout=timeout)

    async def afetch(self, query: str, *args: object, timeout: float | None = None) -> list[Record]:
        async with self.aacquire() as conn:
            return await conn.fetch(query, *args, timeout=timeout)

    async def afetchrow(self, query: str, *args: object, timeout: float | None = None) -> Record | None:
        async with self.aacquire() as conn:
            return await conn.fetchrow(query, *args, timeout=timeout)

    async def afetchval(self, query: str, *args: object, timeout: float | None = None) -> Any:
        async with self.aacquire() as conn:
            return await conn.fetchval(query, *args, timeout=timeout)
