"""Read/write splitting connection pool for primary/replica databases."""

from __future__ import annotations

from .core.enums import HealthCheckStatus, LoadBalancingStrategy, Operation
from .exceptions import ReadWritePoolError, TargetConnectionError, UnavailableError
from .pool import (
    ConnectionPoolConfig,
    DbConnection,
    HealthCheckSettings,
    PoolStats,
    ReadWriteConnectionPool,
    TargetSettings,
)

__all__ = [
    "ConnectionPoolConfig",
    "DbConnection",
    "HealthCheckSettings",
    "HealthCheckStatus",
    "LoadBalancingStrategy",
    "Operation",
    "PoolStats",
    "ReadWriteConnectionPool",
    "ReadWritePoolError",
    "TargetConnectionError",
    "TargetSettings",
    "UnavailableError",
]
