"""Common test fixtures for the simfetch project."""

import asyncio
import typing as t

import aiohttp
import pytest
from aiohttp_client_cache.backends.base import CacheBackend
from pytest_httpserver import HTTPServer

from simfetch import ClientConfig, SimFetch


class SleepRecorder:
    """Stands in for ``asyncio.sleep`` and records requested delays."""

    def __init__(self) -> None:
        """Initialize with no recorded delays."""
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        """Record ``delay`` and return without waiting."""
        self.delays.append(delay)


class FakeClock:
    """Monotonic millisecond clock advanced by hand."""

    def __init__(self) -> None:
        """Initialize the clock at zero."""
        self.now_ms = 0.0

    def __call__(self) -> float:
        """Return the current reading in milliseconds."""
        return self.now_ms

    def advance(self, ms: float) -> None:
        """Move the clock forward by ``ms`` milliseconds."""
        self.now_ms += ms


class StallingSession:
    """Session whose requests never complete."""

    def __init__(self) -> None:
        """Initialize with no recorded calls."""
        self.calls = 0

    async def request(self, *_: object, **__: object) -> aiohttp.ClientResponse:
        """Count the call and wait forever."""
        self.calls += 1
        await asyncio.Event().wait()
        raise AssertionError  # pragma: no cover


@pytest.fixture
def sleeps() -> SleepRecorder:
    """Test fixture recording backoff waits instead of sleeping."""
    return SleepRecorder()


@pytest.fixture
def clock() -> FakeClock:
    """Test fixture providing a hand-driven clock."""
    return FakeClock()


@pytest.fixture
def base_url(httpserver: HTTPServer) -> str:
    """Test fixture providing the local server's base URL without a trailing slash."""
    return f"http://localhost:{httpserver.port}"


@pytest.fixture
async def session() -> t.AsyncGenerator[aiohttp.ClientSession, None]:
    """Test fixture providing a plain aiohttp session."""
    async with aiohttp.ClientSession() as session:
        yield session


def _install_fakes(client: SimFetch, sleeps: SleepRecorder, clock: FakeClock) -> None:
    client._retry_controller._sleep = sleeps
    client._cache._clock = clock


@pytest.fixture
async def client(
    base_url: str,
    sleeps: SleepRecorder,
    clock: FakeClock,
) -> t.AsyncGenerator[SimFetch, None]:
    """Test fixture providing a default SimFetch bound to the local server."""
    config = ClientConfig(base_url=base_url, cache_backend=CacheBackend())
    async with SimFetch(config) as client:
        _install_fakes(client, sleeps, clock)
        yield client


@pytest.fixture
async def client_retry_twice(
    base_url: str,
    sleeps: SleepRecorder,
    clock: FakeClock,
) -> t.AsyncGenerator[SimFetch, None]:
    """Test fixture providing a SimFetch with 2 retries."""
    config = ClientConfig(base_url=base_url, cache_backend=CacheBackend(), retry_number=2)
    async with SimFetch(config) as client:
        _install_fakes(client, sleeps, clock)
        yield client
