"""Exponential-backoff retry driven by classified attempt outcomes."""

from __future__ import annotations

import asyncio
import logging
import math
import typing as t

import aiohttp_retry

from .config import RETRY_DELAY_MS, RETRY_STATUSES
from .types import ClassifiedFailure, Success, TransportFailure

if t.TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import aiohttp

    from .types import Outcome

_logger = logging.getLogger("simfetch")


class RetryController:
    """Runs an attempt function until it succeeds or the retry budget is spent.

    Only ``ClassifiedFailure`` outcomes whose status is in ``RETRY_STATUSES``
    are retried. The wait before the i-th retry is ``base_delay_ms * 2**i``.
    Attempts never overlap: the next one starts after the previous failure
    and its wait have both completed.

    Attributes:
        max_retries: Maximum number of additional attempts after the first.

    """

    def __init__(
        self,
        max_retries: int,
        *,
        base_delay_ms: float = RETRY_DELAY_MS,
        sleep: Callable[[float], Awaitable[t.Any]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            max_retries: Maximum number of additional attempts after the first.
            base_delay_ms: Wait before the first retry in milliseconds.
            sleep: Coroutine function used for the backoff wait, in seconds.
            logger: Logger instance. If None, uses module logger.

        """
        self.max_retries = max_retries
        self._backoff = aiohttp_retry.ExponentialRetry(
            attempts=max_retries + 1,
            start_timeout=base_delay_ms / 1000,
            max_timeout=math.inf,
            factor=2.0,
            statuses=set(RETRY_STATUSES),
        )
        self._sleep = sleep
        self._logger = logger or _logger

    def delay_for(self, retry_index: int) -> float:
        """Return the wait in seconds before the zero-based ``retry_index``-th retry."""
        return self._backoff.get_timeout(attempt=retry_index)

    def is_retryable(self, outcome: Outcome) -> bool:
        """Return True for a classified failure whose status is in the retry set."""
        match outcome:
            case ClassifiedFailure(error=error):
                return error.status in self._backoff.statuses
            case _:
                return False

    async def run(
        self,
        attempt: Callable[[], Awaitable[Outcome]],
    ) -> aiohttp.ClientResponse:
        """Drive ``attempt`` to its first success or final failure.

        Args:
            attempt: Zero-argument coroutine function performing one attempt.

        Returns:
            The response of the first successful attempt.

        Raises:
            HttpStatusError: The last classified failure, when it is not
                retryable or no retries remain.
            Exception: The original error of a ``TransportFailure``, unchanged.

        """
        retries_remaining = self.max_retries
        while True:
            outcome = await attempt()
            match outcome:
                case Success(response=response):
                    return response
                case TransportFailure(cause=cause):
                    raise cause
                case ClassifiedFailure(error=error) if not self.is_retryable(outcome) or retries_remaining == 0:
                    raise error
                case ClassifiedFailure(error=error):
                    delay = self.delay_for(self.max_retries - retries_remaining)
                    retries_remaining -= 1
                    self._logger.warning(
                        "Retrying after status %d in %.1fs (%d retries left): %s",
                        error.status,
                        delay,
                        retries_remaining,
                        error.url,
                    )
                    await self._sleep(delay)
