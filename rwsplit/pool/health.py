from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal, Self

from profilist.timer import Timer
from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import HealthCheckStatus
from ..exceptions import TargetConnectionError
from ..logger import get_logger
from .config import HealthCheckSettings

if TYPE_CHECKING:
    from .connection import DbConnection

logger = get_logger(__name__)

type TargetRole = Literal["writer", "reader"]


class HealthCheckResult(BaseModel):
    """Verdict of one probe against one target."""

    model_config = ConfigDict(frozen=True)

    status: HealthCheckStatus
    address: str
    latency_s: float | None = None
    message: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def healthy(cls, address: str, latency_s: float | None, message: str = "Probe succeeded") -> Self:
        return cls(status=HealthCheckStatus.HEALTHY, address=address, latency_s=latency_s, message=message)

    @classmethod
    def unhealthy(cls, address: str, error: str, latency_s: float | None = None) -> Self:
        return cls(status=HealthCheckStatus.UNHEALTHY, address=address, latency_s=latency_s, message=error)

    def is_healthy(self) -> bool:
        return self.status == HealthCheckStatus.HEALTHY


class TargetHealthInfo(BaseModel):
    """Health of one configured target in a cluster report."""

    model_config = ConfigDict(frozen=True)

    role: TargetRole
    address: str
    status: HealthCheckStatus
    latency_s: float | None = None
    message: str | None = None


class ClusterHealthResult(BaseModel):
    """Health of the writer and every reader.

    The cluster is ``unhealthy`` when the writer is, ``degraded`` when any
    reader is, and ``healthy`` otherwise.
    """

    model_config = ConfigDict(frozen=True)

    status: HealthCheckStatus
    writer: TargetHealthInfo
    readers: tuple[TargetHealthInfo, ...]
    healthy_reader_count: int
    total_reader_count: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_targets(cls, writer: TargetHealthInfo, readers: tuple[TargetHealthInfo, ...]) -> Self:
        healthy_count = sum(1 for info in readers if info.status == HealthCheckStatus.HEALTHY)
        if writer.status != HealthCheckStatus.HEALTHY:
            status = HealthCheckStatus.UNHEALTHY
        elif healthy_count < len(readers):
            status = HealthCheckStatus.DEGRADED
        else:
            status = HealthCheckStatus.HEALTHY
        return cls(
            status=status,
            writer=writer,
            readers=readers,
            healthy_reader_count=healthy_count,
            total_reader_count=len(readers),
        )

    @property
    def is_healthy(self) -> bool:
        """Writer and every reader are healthy."""
        return self.status == HealthCheckStatus.HEALTHY

    @property
    def is_operational(self) -> bool:
        """The writer can serve requests (reads fall back to it)."""
        return self.writer.status == HealthCheckStatus.HEALTHY


class HealthChecker:
    """Runs the configured liveness probe with a bounded timeout.

    A failed, timed out or raising probe is an unhealthy *result*. Only a
    ``TargetConnectionError`` raised before the probe could run propagates.

    With ``recheck_interval_s > 0`` a handle that passed a probe within the
    interval is reported healthy without probing again. A new handle for the
    same target is always probed.
    """

    __slots__ = ("_last_healthy", "_settings")

    def __init__(self, settings: HealthCheckSettings | None = None) -> None:
        self._settings = settings or HealthCheckSettings()
        self._last_healthy: dict[str, tuple[DbConnection, float]] = {}

    @property
    def settings(self) -> HealthCheckSettings:
        return self._settings

    def forget(self, address: str) -> None:
        self._last_healthy.pop(address, None)

    def clear(self) -> None:
        self._last_healthy.clear()

    def _is_fresh(self, handle: DbConnection) -> bool:
        interval = self._settings.recheck_interval_s
        if interval <= 0:
            return False
        entry = self._last_healthy.get(handle.target.address)
        if entry is None:
            return False
        verified, at = entry
        return verified is handle and time.monotonic() - at < interval

    async def acheck(self, handle: DbConnection) -> HealthCheckResult:
        address = handle.target.address
        if self._is_fresh(handle):
            return HealthCheckResult.healthy(address, latency_s=None, message="Recently verified")

        async with Timer(silent=True) as t:
            try:
                async with asyncio.timeout(self._settings.timeout_s):
                    ok = await handle.ais_healthy(self._settings.query)
            except TargetConnectionError:
                self.forget(address)
                raise
            except TimeoutError:
                ok = False
                error = f"probe timed out after {self._settings.timeout_s}s"
            except Exception as e:
                ok = False
                error = f"probe raised {type(e).__name__}: {e}"
            else:
                error = "probe reported unhealthy"

        latency_s = t.elapsed_seconds
        if ok:
            self._last_healthy[address] = (handle, time.monotonic())
            return HealthCheckResult.healthy(address, latency_s=latency_s)

        self.forget(address)
        logger.warning("Health check failed", address=address, error=error, latency_s=latency_s)
        return HealthCheckResult.unhealthy(address, error=error, latency_s=latency_s)
