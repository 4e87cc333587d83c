from __future__ import annotations

import asyncio
import json
from typing import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from ollamaproxy.server.app import create_app
from ollamaproxy.server.config import Settings

Handler = Callable[[httpx.Request], httpx.Response]


def respond(status: int = 200, body=None, content=None) -> Handler:
    def _handler(request: httpx.Request) -> httpx.Response:
        if isinstance(content, httpx.AsyncByteStream):
            return httpx.Response(status, stream=content)
        if content is not None:
            return httpx.Response(status, content=content)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    return _handler


class ScriptedBody(httpx.AsyncByteStream):
    """A backend response body that plays back chunks and records how it was read.

    ``error`` is raised once the chunks run out. With ``forever`` the last
    chunk repeats until the reader stops.
    """

    def __init__(self, chunks, delay: float = 0.0, error: Exception | None = None, forever=False):
        self.chunks = list(chunks)
        self.delay = delay
        self.error = error
        self.forever = forever
        self.reads = 0
        self.closed = False

    async def __aiter__(self):
        i = 0
        while i < len(self.chunks) or self.forever:
            if self.delay:
                await asyncio.sleep(self.delay)
            self.reads += 1
            yield self.chunks[min(i, len(self.chunks) - 1)]
            i += 1
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.closed = True


class FakeBackend:
    """Routes backend calls to canned handlers and records every request."""

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Handler] = {}

    def on(self, method: str, path: str, handler: Handler):
        self.routes[(method, path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, text=f"no route for {request.url.path}")
        return handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def bodies(self, path: str) -> list[dict]:
        return [json.loads(c.content) for c in self.calls if c.url.path == path]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> Settings:
    return Settings(OLLAMA_BASE="http://ollama.test", DEBUG=False, LOG_LEVEL="INFO")


@pytest.fixture
def client(backend, settings):
    app = create_app(settings, transport=backend.transport())
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
