from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RetryConfig(BaseModel):
    """Retry policy for opening a connection to a single target.

    The default of one attempt means a failed open is reported immediately and
    failover moves on to the next candidate.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: int = Field(default=1, ge=1, description="Maximum connect attempts per target")
    max_delay_seconds: float | None = Field(default=None, ge=0, description="Maximum total delay (None = unlimited)")

    use_jitter: bool = Field(default=True, description="Use jitter with exponential backoff (False = pure exponential)")
    wait_min: float = Field(default=0.05, ge=0, description="Minimum wait time in seconds")
    wait_max: float = Field(default=2.0, ge=0, description="Maximum wait time in seconds")
    wait_multiplier: float = Field(default=2.0, ge=1.0, description="Multiplier for exponential backoff")
