from __future__ import annotations

from .core.enums import Operation


class ReadWritePoolError(Exception):
    """Base class for errors raised by the read/write pool."""


class TargetConnectionError(ReadWritePoolError, ConnectionError):
    """A single target could not be opened, or its probe could not run at all.

    Failover recovers from this locally by moving to the next candidate.
    """

    def __init__(self, address: str, message: str) -> None:
        super().__init__(f"{address}: {message}")
        self.address = address


class UnavailableError(ReadWritePoolError):
    """Every candidate for the requested operation has been exhausted."""

    def __init__(self, operation: Operation, attempted: int) -> None:
        noun = "candidate" if attempted == 1 else "candidates"
        super().__init__(f"No healthy connection available for {operation} ({attempted} {noun} attempted)")
        self.operation = operation
        self.attempted = attempted
