"""An asynchronous HTTP client with deadlines, retries, and GET caching."""

from .cache import ResponseCache
from .client import SimFetch
from .config import ClientConfig
from .errors import (
    HttpStatusError,
    SimFetchError,
    StreamUnavailableError,
    TransportTimeoutError,
)
from .retry import RetryController
from .transport import Deadline, TransportExecutor
from .types import (
    Blob,
    ClassifiedFailure,
    HttpMethod,
    Outcome,
    RequestOptions,
    ResponseSnapshot,
    Success,
    TransportFailure,
)

__all__ = [
    "Blob",
    "ClassifiedFailure",
    "ClientConfig",
    "Deadline",
    "HttpMethod",
    "HttpStatusError",
    "Outcome",
    "RequestOptions",
    "ResponseCache",
    "ResponseSnapshot",
    "RetryController",
    "SimFetch",
    "SimFetchError",
    "StreamUnavailableError",
    "Success",
    "TransportExecutor",
    "TransportFailure",
    "TransportTimeoutError",
]
__version__ = "0.1.0"
