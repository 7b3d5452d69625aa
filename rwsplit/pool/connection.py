"""The connection capability the pool depends on.

Any driver object with these members can be handed out by the pool; the pool
never inspects its concrete type.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .config import TargetSettings


@runtime_checkable
class DbConnection(Protocol):
    """A live or potential connection to one target."""

    @property
    def target(self) -> TargetSettings: ...

    @property
    def is_open(self) -> bool: ...

    async def aopen(self) -> None:
        """Establish the connection. Raises on failure."""
        ...

    async def aclose(self) -> None: ...

    async def ais_healthy(self, query: str) -> bool:
        """Run ``query`` as a liveness probe.

        Raises ``TargetConnectionError`` when the probe cannot run at all.
        """
        ...


type Connector = Callable[[TargetSettings], DbConnection]
