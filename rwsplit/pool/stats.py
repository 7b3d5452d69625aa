from __future__ import annotations

import threading

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import StatKind


class PoolStats(BaseModel):
    """Point-in-time view of pool usage."""

    model_config = ConfigDict(frozen=True)

    reads: int = Field(default=0, ge=0)
    writes: int = Field(default=0, ge=0)
    failovers: int = Field(default=0, ge=0)
    readers: int = Field(default=0, ge=0, description="Configured reader count, not a live counter")


class StatsCollector:
    """Counters for reads, writes and failovers.

    The lock is held only while a counter is updated or read, so increments
    from concurrent tasks or threads are never lost.
    """

    __slots__ = ("_counts", "_lock", "_readers")

    def __init__(self, readers: int) -> None:
        self._readers = readers
        self._counts = dict.fromkeys(StatKind, 0)
        self._lock = threading.Lock()

    def increment(self, kind: StatKind) -> None:
        with self._lock:
            self._counts[kind] += 1

    def reset(self) -> None:
        with self._lock:
            for kind in self._counts:
                self._counts[kind] = 0

    def snapshot(self) -> PoolStats:
        with self._lock:
            counts = dict(self._counts)
        return PoolStats(
            reads=counts[StatKind.READS],
            writes=counts[StatKind.WRITES],
            failovers=counts[StatKind.FAILOVERS],
            readers=self._readers,
        )
