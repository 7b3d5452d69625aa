from __future__ import annotations

from collections.abc import Awaitable, Callable, Coroutine
from functools import wraps
from typing import cast

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    after_nothing,
    before_nothing,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_random_exponential,
)
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from ..core.types import P, R
from ..logger import get_logger
from .config import RetryConfig

type RetryCallback = Callable[[RetryCallState], Awaitable[None] | None]
type BeforeSleepCallback = Callable[[RetryCallState], Awaitable[None] | None]

logger = get_logger(__name__)


class RetryLogicError(RuntimeError): ...


def log_before_sleep(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    error = outcome.exception() if outcome is not None else None
    logger.warning(
        "Retrying after failed attempt",
        function=getattr(retry_state.fn, "__qualname__", repr(retry_state.fn)),
        attempt=retry_state.attempt_number,
        sleep_s=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error) if error is not None else None,
    )


class Retry:
    """Async retry decorator driven by a ``RetryConfig``.

    Every exception is retried until ``max_attempts`` (or ``max_delay_seconds``)
    is reached, after which the last exception is re-raised unchanged.
    """

    def __init__(
        self,
        config: RetryConfig,
        before: RetryCallback | None = None,
        after: RetryCallback | None = None,
        before_sleep: BeforeSleepCallback | None = log_before_sleep,
    ) -> None:
        self._config = config
        self._before = before
        self._after = after
        self._before_sleep = before_sleep

        stop: stop_base = stop_after_attempt(config.max_attempts)
        if config.max_delay_seconds:
            stop = stop | stop_after_delay(config.max_delay_seconds)
        self._stop = stop

        wait: wait_base
        if config.use_jitter:
            # NOTE: Full Jitter, see https://aws.amazon.com/blogs/architecture/exponential-backoff-and-jitter/
            wait = wait_random_exponential(min=config.wait_min, max=config.wait_max)
        else:
            wait = wait_exponential(min=config.wait_min, max=config.wait_max, multiplier=config.wait_multiplier)
        self._wait = wait

    @property
    def config(self) -> RetryConfig:
        return self._config

    def __call__(
        self, func: Callable[P, Coroutine[object, object, R]]
    ) -> Callable[P, Coroutine[object, object, R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            async for attempt in AsyncRetrying(
                stop=self._stop,
                wait=self._wait,
                retry=retry_if_exception_type(Exception),
                before=cast(
                    Callable[[RetryCallState], Awaitable[None] | None],
                    self._before or before_nothing,
                ),
                after=cast(
                    Callable[[RetryCallState], Awaitable[None] | None],
                    self._after or after_nothing,
                ),
                before_sleep=self._before_sleep,
                reraise=True,
            ):
                with attempt:
                    return await func(*args, **kwargs)

            raise RetryLogicError("Async retry loop completed without success or failure")

        return wrapper


def retry(
    config: RetryConfig | None = None,
    before: RetryCallback | None = None,
    after: RetryCallback | None = None,
    before_sleep: BeforeSleepCallback | None = log_before_sleep,
) -> Retry:
    return Retry(config or RetryConfig(), before, after, before_sleep)
