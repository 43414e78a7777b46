"""Shared fixtures: a recording mock network behind the shared client."""

from collections.abc import Callable, Iterator

import httpx
import pytest

from meteorhttp import http

Handler = Callable[[httpx.Request], httpx.Response]


class MockNetwork:
    """Records every request that reaches the transport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Handler = lambda request: httpx.Response(200)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def respond(self, status_code: int = 200, **kwargs) -> None:
        self.handler = lambda request: httpx.Response(status_code, **kwargs)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def install(network: MockNetwork, **config) -> None:
    http.configure(
        http.ClientConfig(transport=httpx.MockTransport(network), **config)
    )


@pytest.fixture
def network() -> Iterator[MockNetwork]:
    mock = MockNetwork()
    install(mock)
    yield mock
    http.close_client()
    http.configure(None)
    http.close_client()


class TrackedStream(httpx.SyncByteStream):
    """Response body that remembers whether it was closed, optionally failing part way."""

    def __init__(self, chunks: list[bytes], error: Exception | None = None) -> None:
        self.chunks = chunks
        self.error = error
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        yield from self.chunks
        if self.error is not None:
            raise self.error

    def close(self) -> None:
        self.closed = True
