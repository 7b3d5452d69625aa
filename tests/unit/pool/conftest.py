"""Shared fixtures for pool unit tests.

Provides an in-memory `FakeConnection` whose reachability and health are
controlled through a `FakeBackend`, so routing and failover can be tested
without a database.
"""

from __future__ import annotations

import asyncio
import random
from collections import Counter
from typing import TYPE_CHECKING

import pytest

from rwsplit.core.enums import LoadBalancingStrategy
from rwsplit.exceptions import TargetConnectionError
from rwsplit.pool import ConnectionPoolConfig, HealthCheckSettings, ReadWriteConnectionPool, TargetSettings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable


class FakeConnection:
    """Connection handle backed by `FakeBackend` state."""

    def __init__(self, target: TargetSettings, backend: FakeBackend) -> None:
        self._target = target
        self._backend = backend
        self._open = False
        self.closed_count = 0

    def __repr__(self) -> str:
        return f"FakeConnection({self._target.address!r})"

    @property
    def target(self) -> TargetSettings:
        return self._target

    @property
    def is_open(self) -> bool:
        return self._open

    async def aopen(self) -> None:
        address = self._target.address
        self._backend.open_attempts[address] += 1
        await asyncio.sleep(self._backend.open_delay_s)
        if address in self._backend.unreachable:
            raise OSError(f"connection refused: {address}")
        if self._backend.fail_opens[address] > 0:
            self._backend.fail_opens[address] -= 1
            raise OSError(f"transient failure: {address}")
        self._open = True

    async def aclose(self) -> None:
        self._open = False
        self.closed_count += 1
        if self._target.address in self._backend.close_errors:
            raise RuntimeError("close failed")

    async def ais_healthy(self, query: str) -> bool:
        address = self._target.address
        if not self._open:
            raise TargetConnectionError(address, "connection not open")
        self._backend.probes[address] += 1
        self._backend.queries.append(query)
        delay = self._backend.probe_delay_s.get(address, 0.0)
        await asyncio.sleep(delay)
        if address in self._backend.probe_errors:
            raise RuntimeError("server closed the connection unexpectedly")
        return address not in self._backend.unhealthy


class FakeBackend:
    """Controls how fake targets behave."""

    def __init__(self) -> None:
        self.unhealthy: set[str] = set()
        self.unreachable: set[str] = set()
        self.probe_errors: set[str] = set()
        self.close_errors: set[str] = set()
        self.probe_delay_s: dict[str, float] = {}
        self.fail_opens: Counter[str] = Counter()
        self.open_delay_s = 0.0
        self.created: Counter[str] = Counter()
        self.open_attempts: Counter[str] = Counter()
        self.probes: Counter[str] = Counter()
        self.queries: list[str] = []
        self.handles: list[FakeConnection] = []

    def connector(self, target: TargetSettings) -> FakeConnection:
        self.created[target.address] += 1
        handle = FakeConnection(target, self)
        self.handles.append(handle)
        return handle


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def writer_target() -> TargetSettings:
    return TargetSettings(host="primary.db.local", user="app")


@pytest.fixture
def reader_targets(writer_target: TargetSettings) -> tuple[TargetSettings, ...]:
    return (
        writer_target.for_replica("replica-1.db.local"),
        writer_target.for_replica("replica-2.db.local"),
        writer_target.for_replica("replica-3.db.local"),
    )


@pytest.fixture
def make_pool(
    backend: FakeBackend, writer_target: TargetSettings
) -> Callable[..., ReadWriteConnectionPool]:
    """Build a pool over fake connections."""

    def _make(
        readers: tuple[TargetSettings, ...] = (),
        strategy: LoadBalancingStrategy = LoadBalancingStrategy.ROUND_ROBIN,
        health_check: HealthCheckSettings | None = None,
        seed: int = 7,
    ) -> ReadWriteConnectionPool:
        config = ConnectionPoolConfig(
            writer=writer_target,
            readers=readers,
            strategy=strategy,
            health_check=health_check or HealthCheckSettings(timeout_s=0.5),
        )
        return ReadWriteConnectionPool(config, connector=backend.connector, rng=random.Random(seed))

    return _make


@pytest.fixture
async def pool(
    make_pool: Callable[..., ReadWriteConnectionPool], reader_targets: tuple[TargetSettings, ...]
) -> AsyncIterator[ReadWriteConnectionPool]:
    """Round-robin pool with a writer and three readers."""
    async with make_pool(readers=reader_targets) as p:
        yield p
