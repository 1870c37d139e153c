"""Pytest configuration and fixtures for auth-mgmt tests.

This file provides:
- RecordingTransport: httpx.MockTransport that keeps every request it handled
- TrackingStream: response body stream that counts reads and records close()
- Fixtures: http client factory, stream factory, sample ClientConfig
"""

from __future__ import annotations

from typing import Any, Callable, Generator, Iterator

import httpx
import pytest

from auth_mgmt.models import ClientConfig

BASE_URL = "https://tenant.example.com/api/v2/"

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport(httpx.MockTransport):
    """MockTransport that records requests before handing them to the handler.

    The handler runs after recording, so requests are kept even when the
    handler raises (e.g. to simulate a connection error).
    """

    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]


class TrackingStream(httpx.SyncByteStream):
    """Response body that records how often it was iterated and whether it was closed.

    If error is set, iterating raises it instead of yielding content
    (simulates a connection dropping mid-body).
    """

    def __init__(self, content: bytes = b"", error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.read_count = 0
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        self.read_count += 1
        if self.error is not None:
            raise self.error
        yield self.content

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_client() -> Generator[Callable[[Handler], tuple[httpx.Client, RecordingTransport]], None, None]:
    """Factory for httpx clients backed by a RecordingTransport.

    Clients are closed at teardown.
    """
    clients: list[httpx.Client] = []

    def _make(handler: Handler) -> tuple[httpx.Client, RecordingTransport]:
        transport = RecordingTransport(handler)
        client = httpx.Client(transport=transport, base_url=BASE_URL)
        clients.append(client)
        return client, transport

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def make_stream() -> Callable[..., TrackingStream]:
    """Factory for TrackingStream response bodies."""

    def _make(content: bytes = b"", error: Exception | None = None) -> TrackingStream:
        return TrackingStream(content, error)

    return _make


@pytest.fixture
def client_config() -> ClientConfig:
    """A minimal tenant configuration."""
    return ClientConfig(domain="tenant.example.com", api_token="test-token")


def json_response(status_code: int, body: Any, **kwargs: Any) -> Callable[[httpx.Request], httpx.Response]:
    """Handler that always answers with the given JSON body."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body, **kwargs)

    return handler
