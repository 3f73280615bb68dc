"""Error hierarchy for simfetch.

HTTP failures are normalized into ``HttpStatusError`` values carrying the
parsed error body together with a hint and a help link chosen by status.
Low-level transport faults are not wrapped: they reach the caller as the
original aiohttp or OS exception.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, NamedTuple


class StatusHint(NamedTuple):
    """Human-readable guidance attached to an HTTP failure."""

    hint: str
    learn_more_url: str


STATUS_HINTS: dict[int, StatusHint] = {
    HTTPStatus.BAD_REQUEST: StatusHint(
        "Check your request parameters or body. You might have sent invalid data.",
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status/400",
    ),
    HTTPStatus.UNAUTHORIZED: StatusHint(
        "You are not authorized to access this resource. Please check your credentials.",
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status/401",
    ),
    HTTPStatus.FORBIDDEN: StatusHint(
        "You do not have permission to access this resource. "
        "Contact the administrator if you believe this is a mistake.",
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status/403",
    ),
    HTTPStatus.NOT_FOUND: StatusHint(
        "The resource you are looking for does not exist. Double-check the URL or resource ID.",
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status/404",
    ),
    HTTPStatus.INTERNAL_SERVER_ERROR: StatusHint(
        "Something went wrong on the server. Please try again later or contact support.",
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status/500",
    ),
}

GENERIC_HINT = StatusHint(
    "An unexpected error occurred. Please try again later.",
    "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status",
)

TIMEOUT_MESSAGE = "Request timed out. Please check your network connection."

UNKNOWN_RESPONSE_BODY = "Response type not known"


def hint_for(status: int) -> StatusHint:
    """Return the hint/help-link pair for a status, or the generic pair."""
    return STATUS_HINTS.get(status, GENERIC_HINT)


class SimFetchError(Exception):
    """Base exception for all simfetch errors.

    Attributes:
        message: Human-readable error description.
        cause: The original exception that caused this error.
        url: The URL that was being requested when the error occurred.

    """

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        url: str | None = None,
    ) -> None:
        """Initialize SimFetchError.

        Args:
            message: Human-readable error description.
            cause: The original exception that caused this error.
            url: The URL that was being requested when the error occurred.

        """
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.url = url

    def __str__(self) -> str:
        """Return a string representation of the error."""
        parts = [self.message]
        if self.url:
            parts.append(f"URL: {self.url}")
        if self.cause:
            parts.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")
        return " | ".join(parts)


class HttpStatusError(SimFetchError):
    """The server answered with a non-success status.

    Raised as is once the retry budget is spent, so the caller always sees
    the last failure observed.

    Attributes:
        status: HTTP status code.
        error: Parsed error body: JSON value, decoded text, or a fallback string.
        hint: Guidance for the status.
        learn_more_url: Link documenting the status.

    """

    def __init__(
        self,
        status: int,
        error: Any,
        *,
        hint: StatusHint | None = None,
        cause: BaseException | None = None,
        url: str | None = None,
    ) -> None:
        """Initialize HttpStatusError.

        Args:
            status: HTTP status code.
            error: Parsed error body.
            hint: Hint/help-link pair. Looked up by status when None.
            cause: The original exception that caused this error.
            url: The URL that was being requested when the error occurred.

        """
        self.status = status
        self.error = error
        self.hint, self.learn_more_url = hint or hint_for(status)
        super().__init__(f"HTTP error {status}: {self.hint}", cause=cause, url=url)

    def as_dict(self) -> dict[str, Any]:
        """Return the error value surfaced to callers."""
        return {
            "error": self.error,
            "hint": self.hint,
            "learn_more_url": self.learn_more_url,
        }

    def __str__(self) -> str:
        """Return a string representation of the error."""
        parts = [self.message, f"Status: {self.status}"]
        if self.url:
            parts.append(f"URL: {self.url}")
        if self.cause:
            parts.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")
        return " | ".join(parts)


class TransportTimeoutError(HttpStatusError):
    """The attempt deadline expired before the server answered."""

    def __init__(
        self,
        *,
        cause: BaseException | None = None,
        url: str | None = None,
    ) -> None:
        """Initialize TransportTimeoutError with the synthetic 408 status."""
        super().__init__(
            HTTPStatus.REQUEST_TIMEOUT,
            TIMEOUT_MESSAGE,
            hint=StatusHint(TIMEOUT_MESSAGE, GENERIC_HINT.learn_more_url),
            cause=cause,
            url=url,
        )


class StreamUnavailableError(SimFetchError):
    """The successful response carries no body to stream."""
