from __future__ import annotations

from enum import StrEnum


class HealthCheckStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class LoadBalancingStrategy(StrEnum):
    """How reader candidates are ordered for a single ``aget_reader`` call."""

    ROUND_ROBIN = "round_robin"
    RANDOM = "random"
    WEIGHTED = "weighted"


class Operation(StrEnum):
    READ = "read"
    WRITE = "write"


class StatKind(StrEnum):
    READS = "reads"
    WRITES = "writes"
    FAILOVERS = "failovers"
