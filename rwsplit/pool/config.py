"""Configuration models for the read/write splitting pool.

- `TargetSettings`: one database endpoint (the writer or a reader)
- `HealthCheckSettings`: probe definition and re-check policy
- `ConnectionPoolConfig`: the whole topology plus strategy and policies
"""

from __future__ import annotations

from typing import Self
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, SecretStr, computed_field, model_validator

from ..core.enums import LoadBalancingStrategy
from ..infrastructure.postgres.config import DriverSettings
from ..resilience.config import RetryConfig


class TargetSettings(BaseModel):
    """A database endpoint. Its identity is ``address``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=5432, ge=1, le=65535)
    database: str = Field(default="postgres", min_length=1)
    user: str = Field(default="postgres")
    password: SecretStr | None = Field(default=None)
    weight: int = Field(default=1, ge=1, description="Relative selection weight for the weighted strategy")

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}/{self.database}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def dsn(self) -> str:
        """Build PostgreSQL DSN from connection settings."""
        password = self.password.get_secret_value() if self.password else ""
        escaped_user = quote_plus(self.user)
        auth = f"{escaped_user}:{quote_plus(password)}@" if password else f"{escaped_user}@"
        return f"postgresql://{auth}{self.host}:{self.port}/{self.database}"

    def for_replica(self, host: str, port: int | None = None, weight: int | None = None) -> Self:
        """Copy this target with a different host (and optionally port and weight).

        Replicas typically share database and credentials with the primary.

        Examples
        --------
        >>> primary = TargetSettings(host="primary.db.com", user="app")
        >>> primary.for_replica("replica-1.db.com", weight=3).address
        'replica-1.db.com:5432/postgres'
        """
        update: dict[str, object] = {"host": host}
        if port is not None:
            update["port"] = port
        if weight is not None:
            update["weight"] = weight
        return self.model_validate({**self.model_dump(exclude={"dsn"}), **update})


class HealthCheckSettings(BaseModel):
    """What counts as healthy and how often it is re-checked."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    query: str = Field(default="SELECT 1", min_length=1)
    timeout_s: float = Field(default=2.0, gt=0.0, le=60.0, description="Bound on a single probe")
    recheck_interval_s: float = Field(
        default=0.0,
        ge=0.0,
        description="Trust a passed probe for this long (0 = probe on every use)",
    )
    check_writer: bool = Field(default=True, description="Probe the writer before handing it out")


class ConnectionPoolConfig(BaseModel):
    """Configuration for a read/write splitting pool.

    Examples
    --------
    >>> config = ConnectionPoolConfig(
    ...     writer=TargetSettings(host="primary.db.com"),
    ...     readers=(
    ...         TargetSettings(host="replica-1.db.com", weight=3),
    ...         TargetSettings(host="replica-2.db.com"),
    ...     ),
    ...     strategy=LoadBalancingStrategy.WEIGHTED,
    ... )

    >>> # From a config file
    >>> config = ConnectionPoolConfig.model_validate(yaml.safe_load(f))
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    writer: TargetSettings
    readers: tuple[TargetSettings, ...] = Field(default_factory=tuple)
    strategy: LoadBalancingStrategy = Field(default=LoadBalancingStrategy.ROUND_ROBIN)
    health_check: HealthCheckSettings = Field(default_factory=HealthCheckSettings)
    driver: DriverSettings = Field(default_factory=DriverSettings)
    connect_retry: RetryConfig = Field(default_factory=RetryConfig)

    @model_validator(mode="after")
    def _check_unique_readers(self) -> Self:
        seen: set[str] = set()
        for reader in self.readers:
            if reader.address in seen:
                msg = f"duplicate reader address: {reader.address}"
                raise ValueError(msg)
            seen.add(reader.address)
        return self

    @property
    def reader_count(self) -> int:
        return len(self.readers)

    @classmethod
    def with_replica_hosts(
        cls,
        writer: TargetSettings,
        hosts: list[str],
        strategy: LoadBalancingStrategy = LoadBalancingStrategy.ROUND_ROBIN,
    ) -> Self:
        """Create a config whose readers are derived from the writer.

        Credentials, port and database are inherited from ``writer``.
        """
        readers = tuple(writer.for_replica(host) for host in hosts)
        return cls(writer=writer, readers=readers, strategy=strategy)
