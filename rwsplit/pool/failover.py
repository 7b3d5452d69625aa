from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..exceptions import TargetConnectionError
from ..logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config import TargetSettings
    from .connection import DbConnection
    from .factory import ConnectionFactory
    from .health import HealthChecker

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class FailoverOutcome:
    """Result of walking one candidate order.

    ``handle`` is ``None`` when every candidate failed.
    """

    handle: DbConnection | None
    target: TargetSettings | None
    attempts: int

    @property
    def exhausted(self) -> bool:
        return self.handle is None

    @property
    def failed_over(self) -> bool:
        return self.attempts > 1


class FailoverCoordinator:
    """Tries candidates in order until one yields a healthy handle.

    Failures of individual candidates are logged and swallowed; the caller
    only learns about exhaustion through the returned outcome.
    """

    __slots__ = ("_checker", "_factory")

    def __init__(self, factory: ConnectionFactory, checker: HealthChecker) -> None:
        self._factory = factory
        self._checker = checker

    async def aselect(self, candidates: Sequence[TargetSettings], *, check: bool = True) -> FailoverOutcome:
        attempts = 0
        for target in candidates:
            attempts += 1
            handle = await self._atry(target, check=check)
            if handle is not None:
                if attempts > 1:
                    logger.info("Failover succeeded", address=target.address, attempts=attempts)
                return FailoverOutcome(handle=handle, target=target, attempts=attempts)

        if attempts:
            logger.error("All candidates exhausted", attempts=attempts)
        return FailoverOutcome(handle=None, target=None, attempts=attempts)

    async def _atry(self, target: TargetSettings, *, check: bool) -> DbConnection | None:
        try:
            handle = await self._factory.aget_or_create(target)
        except TargetConnectionError as e:
            logger.warning("Candidate unreachable", address=target.address, error=str(e))
            return None

        if not check:
            return handle

        try:
            result = await self._checker.acheck(handle)
        except TargetConnectionError as e:
            logger.warning("Candidate could not be probed", address=target.address, error=str(e))
            await self._factory.ainvalidate(target, handle)
            return None

        if not result.is_healthy():
            logger.warning("Candidate unhealthy", address=target.address, reason=result.message)
            await self._factory.ainvalidate(target, handle)
            return None

        return handle
