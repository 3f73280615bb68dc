"""Core simfetch client."""

from __future__ import annotations

import logging
import typing as t
from http import HTTPStatus

import aiohttp
from aiohttp import hdrs
from yarl import URL

from .cache import ResponseCache
from .errors import StreamUnavailableError
from .retry import RetryController
from .transport import TransportExecutor
from .types import Blob, ResponseSnapshot

if t.TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from .config import ClientConfig
    from .types import RequestOptions

# Module-level logger for structured logging
_logger = logging.getLogger("simfetch")

_BODYLESS_STATUSES = frozenset(
    {HTTPStatus.NO_CONTENT, HTTPStatus.RESET_CONTENT, HTTPStatus.NOT_MODIFIED},
)


class SimFetch:
    """Asynchronous HTTP client with deadlines, retries, and GET caching.

    Every request runs through a retry controller that repeats attempts
    failing with 408, 500, 502, 503 or 504 using exponential backoff. Each
    attempt is bounded by the configured timeout. ``get()`` additionally
    serves repeated reads from a short-lived in-memory cache. The client
    must be used as an async context manager.

    Attributes:
        config: Base URL, default options, timeout and retry settings.

    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration.
            session: Session to issue requests with. The caller keeps
                ownership and must close it. If None, the client opens and
                closes its own session.

        """
        self.config = config
        self._logger = self.config.logger or _logger
        self._external_session = session
        self._session: aiohttp.ClientSession | None = None
        self._transport: TransportExecutor | None = None
        self._retry_controller = RetryController(
            self.config.retry_number if self.config.retry else 0,
            logger=self._logger,
        )
        self._cache = ResponseCache(self.config.cache_backend, logger=self._logger)

    def _build_url(self, path: str) -> URL:
        """Append ``path`` to the base URL without normalizing slashes."""
        return URL(f"{self.config.base_url}{path}")

    def _merge_options(self, options: Mapping[str, t.Any] | None) -> RequestOptions:
        """Merge per-call options over the configured defaults.

        Per-call values win. Header mappings are merged key by key with the
        same precedence.
        """
        merged = dict(self.config.options)
        if options:
            merged.update(options)
            default_headers = self.config.options.get("headers")
            if default_headers and options.get("headers"):
                merged["headers"] = {**default_headers, **options["headers"]}
        return merged

    def _require_transport(self) -> TransportExecutor:
        """Return the transport, or fail when the client was not entered."""
        if self._transport is None:
            msg = "SimFetch must be used as async context manager"
            raise RuntimeError(msg)
        return self._transport

    async def create(
        self,
        path: str,
        options: Mapping[str, t.Any] | None = None,
    ) -> aiohttp.ClientResponse:
        """Make a request with retries and return the unread response.

        Args:
            path: Path appended to the base URL as is.
            options: Request options merged over the configured defaults.
                ``method`` selects the HTTP method (GET when absent); every
                other key is passed to ``aiohttp.ClientSession.request``.

        Returns:
            The response of the first successful attempt. The caller reads
            and releases it.

        Raises:
            RuntimeError: If called outside of an async context manager.
            HttpStatusError: If the final attempt failed with an HTTP status.
            TransportTimeoutError: If the final attempt hit the deadline.

        """
        transport = self._require_transport()
        url = self._build_url(path)
        kwargs = self._merge_options(options)
        method = str(kwargs.pop("method", hdrs.METH_GET)).upper()

        self._logger.debug("Starting request: %s %s", method, url)
        response = await self._retry_controller.run(
            lambda: transport.attempt(method, url, kwargs),
        )
        self._logger.debug("Request completed: %s %s -> %d", method, url, response.status)
        return response

    async def get(
        self,
        path: str,
        options: Mapping[str, t.Any] | None = None,
    ) -> ResponseSnapshot:
        """GET a resource, served from the cache while the entry is fresh.

        The cache key combines the absolute URL with the per-call options as
        given, so identical calls share an entry. Calls whose options JSON
        cannot encode bypass the cache.

        Returns:
            A snapshot of the response, independent of the cached copy.

        """
        self._require_transport()
        key = self._cache.make_key(self._build_url(path), options)
        if key is None:
            self._logger.debug("Options not cacheable, bypassing cache: %s", path)
        else:
            cached = await self._cache.lookup(key)
            if cached is not None:
                return cached

        response = await self.create(path, {"method": hdrs.METH_GET, **(options or {})})
        snapshot = await ResponseSnapshot.from_response(response)
        if key is not None:
            await self._cache.store(key, snapshot)
        return snapshot.copy()

    async def post(
        self,
        path: str,
        data: t.Any,
        options: Mapping[str, t.Any] | None = None,
    ) -> aiohttp.ClientResponse:
        """POST ``data`` as a JSON body."""
        return await self.create(path, {"method": hdrs.METH_POST, "json": data, **(options or {})})

    async def put(
        self,
        path: str,
        data: t.Any,
        options: Mapping[str, t.Any] | None = None,
    ) -> aiohttp.ClientResponse:
        """PUT ``data`` as a JSON body."""
        return await self.create(path, {"method": hdrs.METH_PUT, "json": data, **(options or {})})

    async def delete(
        self,
        path: str,
        options: Mapping[str, t.Any] | None = None,
    ) -> aiohttp.ClientResponse:
        """DELETE a resource. No body is sent and the cache is not touched."""
        return await self.create(path, {"method": hdrs.METH_DELETE, **(options or {})})

    async def json(self, path: str, options: Mapping[str, t.Any] | None = None) -> t.Any:
        """Request ``path`` and decode the body as JSON regardless of content type."""
        response = await self.create(path, options)
        async with response:
            return await response.json(content_type=None)

    async def text(self, path: str, options: Mapping[str, t.Any] | None = None) -> str:
        """Request ``path`` and decode the body as text using the response charset."""
        response = await self.create(path, options)
        async with response:
            return await response.text()

    async def blob(self, path: str, options: Mapping[str, t.Any] | None = None) -> Blob:
        """Request ``path`` and return its bytes together with the media type."""
        response = await self.create(path, options)
        async with response:
            return Blob(await response.read(), response.content_type)

    async def array_buffer(self, path: str, options: Mapping[str, t.Any] | None = None) -> bytes:
        """Request ``path`` and return the raw body bytes."""
        response = await self.create(path, options)
        async with response:
            return await response.read()

    async def stream(
        self,
        path: str,
        options: Mapping[str, t.Any] | None = None,
    ) -> aiohttp.StreamReader:
        """Request ``path`` and return its body as a byte stream.

        The connection is released once the stream has been read to the end.

        Raises:
            StreamUnavailableError: If the response carries no body.

        """
        response = await self.create(path, options)
        if (
            response.method == hdrs.METH_HEAD
            or response.status in _BODYLESS_STATUSES
            or response.content_length == 0
        ):
            response.release()
            msg = "Response body is not available for streaming"
            raise StreamUnavailableError(msg, url=str(response.url))
        return response.content

    async def clear_cache(self) -> None:
        """Drop every cached GET response."""
        await self._cache.clear()

    async def __aenter__(self) -> t.Self:
        """Enter the async context manager.

        Opens the HTTP session unless one was given to the constructor.

        Returns:
            SimFetch: The client instance for use in async with statement.

        """
        self._session = self._external_session or aiohttp.ClientSession()
        self._transport = TransportExecutor(
            self._session,
            timeout_ms=self.config.timeout,
            max_rate_per_domain=self.config.max_rate_per_domain,
            time_period_per_domain=self.config.time_period_per_domain,
            logger=self._logger,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the async context manager.

        Closes the session if the client opened it.

        Args:
            exc_type: Exception type if an exception was raised, None otherwise.
            exc_val: Exception value if an exception was raised, None otherwise.
            exc_tb: Exception traceback if an exception was raised, None otherwise.

        """
        if self._session is not None and self._session is not self._external_session:
            await self._session.close()
        self._session = None
        self._transport = None
