"""Single transport attempts with a deadline and outcome classification."""

from __future__ import annotations

import asyncio
import collections
import json
import logging
import typing as t

import aiohttp
import aiolimiter

from .errors import UNKNOWN_RESPONSE_BODY, HttpStatusError, TransportTimeoutError
from .types import ClassifiedFailure, Outcome, Success, TransportFailure

if t.TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from yarl import URL

_logger = logging.getLogger("simfetch")


class Deadline:
    """Cancellation deadline for one transport attempt.

    Used as an async context manager around the attempt. Whichever settles
    first wins: if the deadline fires, the attempt is cancelled and
    ``TimeoutError`` is raised on exit; if the attempt completes, the timer
    is disarmed.
    """

    def __init__(self, timeout_ms: float) -> None:
        """Initialize the deadline.

        Args:
            timeout_ms: Time allowed for the attempt in milliseconds.

        """
        self.timeout_ms = timeout_ms
        self._timeout: asyncio.Timeout | None = None

    def expired(self) -> bool:
        """Return True if the deadline fired and cancelled the attempt."""
        return self._timeout is not None and self._timeout.expired()

    async def __aenter__(self) -> t.Self:
        """Arm the timer for the attempt."""
        self._timeout = asyncio.timeout(self.timeout_ms / 1000)
        await self._timeout.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        """Disarm the timer, or raise ``TimeoutError`` if it fired."""
        assert self._timeout is not None
        return await self._timeout.__aexit__(exc_type, exc_val, exc_tb)


async def read_error_body(response: aiohttp.ClientResponse) -> t.Any:
    """Parse the body of a failed response.

    Tries JSON first, then decoded text. Falls back to a fixed string when
    the body can be neither read nor decoded. The response is released.
    """
    try:
        raw = await response.read()
    except aiohttp.ClientError:
        return UNKNOWN_RESPONSE_BODY
    finally:
        response.release()

    try:
        return json.loads(raw)
    except ValueError:
        pass
    try:
        return raw.decode(response.get_encoding())
    except (UnicodeDecodeError, LookupError):
        return UNKNOWN_RESPONSE_BODY


class TransportExecutor:
    """Performs exactly one transport attempt per call and never retries.

    Attributes:
        timeout_ms: Deadline of each attempt in milliseconds. It covers the
            attempt until the response headers arrive.

    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        timeout_ms: float,
        max_rate_per_domain: float | None = None,
        time_period_per_domain: float = 1,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            session: Session used to issue requests.
            timeout_ms: Deadline of each attempt in milliseconds.
            max_rate_per_domain: Maximum attempts per domain per time period.
                None disables throttling.
            time_period_per_domain: Time period in seconds for rate limiting.
            logger: Logger instance. If None, uses module logger.

        """
        self.timeout_ms = timeout_ms
        self._session = session
        self._logger = logger or _logger
        self._max_rate_per_domain = max_rate_per_domain
        self._limiters: dict[str, aiolimiter.AsyncLimiter] = collections.defaultdict(
            lambda: aiolimiter.AsyncLimiter(
                max_rate=max_rate_per_domain or 1,
                time_period=time_period_per_domain,
            ),
        )

    async def _apply_rate_limit(self, url: URL) -> None:
        """Wait for the domain's limiter when throttling is configured."""
        if self._max_rate_per_domain is None:
            return
        domain = url.host_port_subcomponent or ""
        async with self._limiters[domain]:
            self._logger.debug("Rate limit acquired for domain: %s", domain)

    async def attempt(
        self,
        method: str,
        url: URL,
        kwargs: Mapping[str, t.Any],
    ) -> Outcome:
        """Issue one request and classify what happened.

        Args:
            method: HTTP method.
            url: Absolute request URL.
            kwargs: Keyword arguments for ``aiohttp.ClientSession.request``.

        Returns:
            ``Success`` with the unread response for a 2xx status,
            ``ClassifiedFailure`` for any other status or an expired deadline,
            ``TransportFailure`` for errors without a status.

        """
        url_str = str(url)
        await self._apply_rate_limit(url)

        deadline = Deadline(self.timeout_ms)
        try:
            async with deadline:
                response = await self._session.request(method, url, **kwargs)
        except TimeoutError as e:
            if not deadline.expired():
                return self._transport_failure(method, url_str, e)
            self._logger.warning(
                "Request timeout after %sms: %s %s",
                self.timeout_ms,
                method,
                url_str,
            )
            return ClassifiedFailure(TransportTimeoutError(cause=e, url=url_str))
        except Exception as e:  # noqa: BLE001
            return self._transport_failure(method, url_str, e)

        if not 200 <= response.status < 300:  # noqa: PLR2004
            self._logger.warning(
                "Non-OK response: %s %s -> %d",
                method,
                url_str,
                response.status,
            )
            body = await read_error_body(response)
            return ClassifiedFailure(HttpStatusError(response.status, body, url=url_str))

        return Success(response)

    def _transport_failure(self, method: str, url_str: str, error: Exception) -> TransportFailure:
        """Log a transport fault and wrap it without classification."""
        self._logger.error("Transport error: %s %s -> %s: %s", method, url_str, type(error).__name__, error)
        return TransportFailure(error)
