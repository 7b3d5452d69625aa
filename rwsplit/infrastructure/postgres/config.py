"""Driver settings shared by every asyncpg-backed target."""

from __future__ import annotations

from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AsyncpgServerSettings(BaseModel):
    """PostgreSQL server settings passed to each connection."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    application_name: str = Field(default="rwsplit")
    jit: Literal["on", "off"] = Field(default="off")


class DriverSettings(BaseModel):
    """asyncpg pool sizing applied to each target's handle.

    Each target (writer or reader) owns one asyncpg pool; these settings are
    shared by all of them.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    min_size: int = Field(default=1, ge=0, le=100)
    max_size: int = Field(default=10, ge=1, le=200)
    connect_timeout: float = Field(default=5.0, gt=0.0, le=120.0, description="Per-connection connect timeout (seconds)")
    command_timeout: float = Field(default=60.0, ge=1.0, le=300.0)
    max_inactive_connection_lifetime: float = Field(default=300.0, ge=0.0)
    statement_cache_size: int = Field(default=256, ge=0, le=1000)
    server_settings: AsyncpgServerSettings = Field(default_factory=AsyncpgServerSettings)

    @model_validator(mode="after")
    def _check_sizes(self) -> Self:
        if self.min_size > self.max_size:
            msg = f"min_size ({self.min_size}) must not exceed max_size ({self.max_size})"
            raise ValueError(msg)
        return self

    def to_pool_params(self, dsn: str) -> dict[str, Any]:
        """Convert settings to ``asyncpg.create_pool()`` keyword arguments."""
        return {
            "dsn": dsn,
            "min_size": self.min_size,
            "max_size": self.max_size,
            "timeout": self.connect_timeout,
            "command_timeout": self.command_timeout,
            "max_inactive_connection_lifetime": self.max_inactive_connection_lifetime,
            "statement_cache_size": self.statement_cache_size,
            "server_settings": self.server_settings.model_dump(),
        }
