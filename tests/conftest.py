"""
Pytest configuration and shared fixtures.

HTTP is served by an in-memory FakeServer plugged into httpx through
``httpx.MockTransport``; nothing touches the network.
"""

import asyncio

import httpx
import pytest

from iptvperf.models import MeasurementConfig


async def endless_body(chunk: bytes = b"\x47" * 1316, delay: float = 0.01):
    """A live-stream style body that never ends."""
    while True:
        await asyncio.sleep(delay)
        yield chunk


class FakeServer:
    """Route table of URL -> canned response, recording every request."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, url, status=200, body=b"", headers=None, error=None, stream=None, head_status=None, head_delay=0.0):
        """Register a response for *url*.

        ``error`` is an exception class raised instead of answering;
        ``stream`` is a zero-argument callable returning an async body;
        ``head_status`` overrides the status of HEAD requests only;
        ``head_delay`` stalls HEAD requests for that many seconds.
        """
        if isinstance(body, str):
            body = body.encode()
        self.routes[url] = {
            "status": status,
            "body": body,
            "headers": headers or {},
            "error": error,
            "stream": stream,
            "head_status": head_status,
            "head_delay": head_delay,
        }

    def urls_requested(self, method=None):
        return [
            str(r.url) for r in self.requests if method is None or r.method == method
        ]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, request=request)

        if route["error"] is not None:
            raise route["error"]("simulated failure", request=request)

        if request.method == "HEAD":
            if route["head_delay"]:
                await asyncio.sleep(route["head_delay"])
            status = route["head_status"] or route["status"]
            return httpx.Response(status, headers=route["headers"], request=request)

        if route["stream"] is not None:
            return httpx.Response(
                route["status"],
                headers=route["headers"],
                content=route["stream"](),
                request=request,
            )

        return httpx.Response(
            route["status"],
            headers=route["headers"],
            content=route["body"],
            request=request,
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            follow_redirects=True,
        )


@pytest.fixture
def server():
    """A fresh FakeServer per test."""
    return FakeServer()


@pytest.fixture
def config():
    """Short timeouts so slow-path tests finish quickly."""
    return MeasurementConfig(
        timeout=5.0,
        probe_timeout=1.0,
        stream_window=0.3,
        connect_timeout=1.0,
        read_timeout=1.0,
    )


@pytest.fixture
def endless():
    """Factory for never-ending response bodies."""
    return endless_body


@pytest.fixture
def run():
    """Drive a coroutine to completion on a fresh event loop."""
    return asyncio.run
