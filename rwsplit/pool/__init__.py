"""Read/write splitting connection pool.

This module provides:

- `ReadWriteConnectionPool`: routes writes to the writer and reads across readers
- `ConnectionPoolConfig`: writer, readers, strategy and policies
- `DbConnection`: the connection capability the pool hands out

Usage
-----
::

    config = ConnectionPoolConfig.with_replica_hosts(
        writer_target,
        ["replica-1.db.com", "replica-2.db.com"],
    )
    async with ReadWriteConnectionPool.from_config(config) as pool:
        writer = await pool.aget_writer()
        reader = await pool.aget_reader()
"""

from .balancer import LoadBalancer
from .config import ConnectionPoolConfig, HealthCheckSettings, TargetSettings
from .connection import Connector, DbConnection
from .factory import ConnectionFactory
from .failover import FailoverCoordinator, FailoverOutcome
from .health import ClusterHealthResult, HealthChecker, HealthCheckResult, TargetHealthInfo
from .pool import ReadWriteConnectionPool
from .stats import PoolStats, StatsCollector

__all__ = [
    "ClusterHealthResult",
    "ConnectionFactory",
    "ConnectionPoolConfig",
    "Connector",
    "DbConnection",
    "FailoverCoordinator",
    "FailoverOutcome",
    "HealthCheckResult",
    "HealthCheckSettings",
    "HealthChecker",
    "LoadBalancer",
    "PoolStats",
    "ReadWriteConnectionPool",
    "StatsCollector",
    "TargetHealthInfo",
    "TargetSettings",
]
