"""Configuration settings for simfetch."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from http import HTTPStatus
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import logging
    from collections.abc import Mapping

    from aiohttp_client_cache.backends.base import CacheBackend

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_RETRY_NUMBER = 5
RETRY_DELAY_MS = 1000
CACHE_TTL_MS = 60_000

RETRY_STATUSES = frozenset(
    {
        HTTPStatus.REQUEST_TIMEOUT,
        HTTPStatus.INTERNAL_SERVER_ERROR,
        HTTPStatus.BAD_GATEWAY,
        HTTPStatus.SERVICE_UNAVAILABLE,
        HTTPStatus.GATEWAY_TIMEOUT,
    },
)


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for a SimFetch client.

    Attributes:
        base_url: Prefix for every request path. Concatenated as is.
        options: Default request options applied to every call.
        timeout: Per-attempt deadline in milliseconds.
        retry: Whether failed attempts with a retryable status are retried.
        retry_number: Maximum number of additional attempts after the first.
        cache_backend: Backend holding cached GET snapshots. If None, an
            in-memory backend is created.
        logger: Logger instance for structured logging. If None, uses module logger.
        max_rate_per_domain: Maximum attempts per domain per time period.
            None disables throttling.
        time_period_per_domain: Time period in seconds for rate limiting.

    """

    base_url: str
    options: Mapping[str, Any] = field(default_factory=dict)
    timeout: int = DEFAULT_TIMEOUT_MS
    retry: bool = True
    retry_number: int = DEFAULT_RETRY_NUMBER
    cache_backend: CacheBackend | None = None
    logger: logging.Logger | None = None
    max_rate_per_domain: float | None = None
    time_period_per_domain: float = 1

    def __post_init__(self) -> None:
        """Reject values the request pipeline cannot honor and freeze the default options.

        The options are deep-copied into a read-only mapping, so later changes
        to the caller's mapping do not reach the requests.
        """
        if self.timeout <= 0:
            msg = f"timeout must be a positive number of milliseconds, got {self.timeout}"
            raise ValueError(msg)
        if self.retry_number < 0:
            msg = f"retry_number must be non-negative, got {self.retry_number}"
            raise ValueError(msg)
        if self.max_rate_per_domain is not None and self.max_rate_per_domain <= 0:
            msg = f"max_rate_per_domain must be positive, got {self.max_rate_per_domain}"
            raise ValueError(msg)
        object.__setattr__(self, "options", MappingProxyType(copy.deepcopy(dict(self.options))))
