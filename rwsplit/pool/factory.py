"""Lazy, per-target connection cache.

A handle is built and opened the first time its target is needed, then reused
until it is invalidated or the pool is closed. Concurrent first requests for
the same target share one construction: a per-address ``asyncio.Lock`` admits
one opener while the others wait and then pick up its result. A cached handle
is returned without taking any lock.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from ..exceptions import TargetConnectionError
from ..logger import get_logger
from ..resilience.config import RetryConfig
from ..resilience.retry import Retry

if TYPE_CHECKING:
    from .config import TargetSettings
    from .connection import Connector, DbConnection

logger = get_logger(__name__)


class ConnectionFactory:
    __slots__ = ("_connector", "_handles", "_locks", "_retry")

    def __init__(self, connector: Connector, connect_retry: RetryConfig | None = None) -> None:
        self._connector = connector
        self._retry = Retry(connect_retry or RetryConfig())
        self._handles: dict[str, DbConnection] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def cached_addresses(self) -> tuple[str, ...]:
        return tuple(self._handles)

    def get_cached(self, target: TargetSettings) -> DbConnection | None:
        return self._handles.get(target.address)

    async def aget_or_create(self, target: TargetSettings) -> DbConnection:
        """Return the cached handle for ``target``, opening a new one if needed.

        Raises
        ------
        TargetConnectionError
            If the handle could not be built or opened. Nothing is cached, so
            the next call starts from scratch.
        """
        handle = self._handles.get(target.address)
        if handle is not None:
            return handle

        if (lock := self._locks.get(target.address)) is None:
            lock = self._locks[target.address] = asyncio.Lock()
        async with lock:
            handle = self._handles.get(target.address)
            if handle is not None:
                return handle

            handle = await self._aopen(target)
            self._handles[target.address] = handle
            logger.info("Connection created", address=target.address)
            return handle

    async def _aopen(self, target: TargetSettings) -> DbConnection:
        try:
            handle = self._connector(target)
            await self._retry(handle.aopen)()
        except TargetConnectionError:
            raise
        except Exception as e:
            logger.warning("Connection could not be opened", address=target.address, error=str(e))
            raise TargetConnectionError(target.address, f"failed to open connection: {e}") from e
        return handle

    async def ainvalidate(self, target: TargetSettings, handle: DbConnection | None = None) -> None:
        """Drop and close the cached handle so the next request reconnects.

        When ``handle`` is given, the cache entry is only dropped if it still
        holds that handle; a replacement opened by another task is kept.
        """
        cached = self._handles.get(target.address)
        if cached is None or (handle is not None and cached is not handle):
            return

        del self._handles[target.address]
        logger.info("Connection invalidated", address=target.address)
        await self._aclose_handle(cached)

    async def aclose_all(self) -> None:
        """Close every cached handle.

        Waits for constructions already in flight so their handles are closed
        too instead of being cached after shutdown.
        """
        for address, lock in list(self._locks.items()):
            async with lock:
                handle = self._handles.pop(address, None)
            if handle is not None:
                await self._aclose_handle(handle)

    @staticmethod
    async def _aclose_handle(handle: DbConnection) -> None:
        try:
            await handle.aclose()
        except Exception as e:
            logger.warning("Connection failed to close", address=handle.target.address, error=str(e))
