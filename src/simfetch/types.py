"""Request and response handling types for simfetch.

This module provides the outcome of a single transport attempt, the
re-readable snapshot stored by the response cache, and the option aliases
shared by the client.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aiohttp import hdrs
from multidict import CIMultiDict

if TYPE_CHECKING:
    from collections.abc import Callable

    import aiohttp
    from yarl import URL

    from .errors import HttpStatusError

# Request options are aiohttp request keyword arguments plus "method".
# Users can use aiohttp.hdrs.METH_GET, aiohttp.hdrs.METH_POST, etc. or plain strings
RequestOptions = dict[str, Any]
HttpMethod = str


@dataclass(frozen=True)
class Success:
    """The attempt completed with a 2xx status; the body is still unread."""

    response: aiohttp.ClientResponse


@dataclass(frozen=True)
class ClassifiedFailure:
    """The attempt failed with an HTTP status, real or synthetic."""

    error: HttpStatusError


@dataclass(frozen=True)
class TransportFailure:
    """The attempt failed without an HTTP status, e.g. a refused connection."""

    cause: BaseException


Outcome = Success | ClassifiedFailure | TransportFailure


@dataclass(frozen=True)
class Blob:
    """Response body paired with its media type."""

    data: bytes
    content_type: str


@dataclass(frozen=True)
class ResponseSnapshot:
    """A fully read response that can be decoded any number of times.

    Mirrors the reading half of ``aiohttp.ClientResponse`` so cached and
    live GET results are consumed the same way.

    Attributes:
        status: HTTP status code.
        reason: HTTP reason phrase.
        url: Final URL of the response.
        headers: Response headers.
        body: Raw response body.
        encoding: Charset used by ``text()``.

    """

    status: int
    reason: str | None
    url: URL
    headers: CIMultiDict[str]
    body: bytes
    encoding: str

    @classmethod
    async def from_response(cls, response: aiohttp.ClientResponse) -> ResponseSnapshot:
        """Read ``response`` to the end and release its connection."""
        try:
            body = await response.read()
        finally:
            response.release()
        return cls(
            status=response.status,
            reason=response.reason,
            url=response.url,
            headers=CIMultiDict(response.headers),
            body=body,
            encoding=response.get_encoding(),
        )

    @property
    def ok(self) -> bool:
        """Whether the status is in the 2xx range."""
        return 200 <= self.status < 300  # noqa: PLR2004

    @property
    def content_type(self) -> str:
        """Media type from the Content-Type header."""
        return self.headers.get(hdrs.CONTENT_TYPE, "application/octet-stream")

    async def read(self) -> bytes:
        """Return the body bytes."""
        return self.body

    async def text(self, encoding: str | None = None) -> str:
        """Decode the body with ``encoding``, or the response charset when None."""
        return self.body.decode(encoding or self.encoding)

    async def json(self, *, loads: Callable[[str], Any] = json.loads) -> Any:
        """Decode the body as JSON."""
        return loads(await self.text())

    def copy(self) -> ResponseSnapshot:
        """Return an independent snapshot with its own header mapping."""
        return dataclasses.replace(self, headers=self.headers.copy())

