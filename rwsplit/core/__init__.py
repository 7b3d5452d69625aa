"""Core module exports."""

from __future__ import annotations

from .enums import HealthCheckStatus, LoadBalancingStrategy, Operation, StatKind

__all__ = [
    "HealthCheckStatus",
    "LoadBalancingStrategy",
    "Operation",
    "StatKind",
]
