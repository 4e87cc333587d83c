from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator

import httpx

from ollamaproxy.errors import UpstreamUnreachable
from ollamaproxy.log import logger, preview

DEFAULT_TIMEOUT = 300.0


@dataclass(frozen=True)
class UpstreamResponse:
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class UpstreamStream:
    """An open backend response whose body has not been read yet.

    Whoever opens the stream owns it and must call ``aclose``.
    """

    def __init__(self, response: httpx.Response, url: str, deadline: float = DEFAULT_TIMEOUT):
        self._response = response
        self.url = url
        self.deadline = deadline

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_closed(self) -> bool:
        return self._response.is_closed

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except httpx.TransportError as e:
            raise UpstreamUnreachable(self.url, _describe(e)) from e

    async def read_text(self) -> str:
        try:
            await asyncio.wait_for(self._response.aread(), self.deadline)
        except asyncio.TimeoutError as e:
            raise UpstreamUnreachable(self.url, _deadline_reason(self.deadline)) from e
        except httpx.TransportError as e:
            raise UpstreamUnreachable(self.url, _describe(e)) from e
        return self._response.text

    async def aclose(self):
        await self._response.aclose()


class UpstreamInvoker:
    """Sends requests to the backend.

    ``timeout`` is a total deadline for buffered calls. Streams only get it as
    a per-read timeout, since a healthy generation can run for a long time.
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = DEFAULT_TIMEOUT):
        self.client = client
        self.deadline = timeout
        self.timeout = httpx.Timeout(timeout)

    @property
    def base_url(self) -> str:
        return str(self.client.base_url).rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def get(self, path: str) -> UpstreamResponse:
        return await self._buffered("GET", path, None, "-")

    async def post(
        self, path: str, payload: dict[str, Any], model: str = "-"
    ) -> UpstreamResponse:
        return await self._buffered("POST", path, payload, model)

    async def open_stream(
        self, path: str, payload: dict[str, Any], model: str = "-"
    ) -> UpstreamStream:
        request = self.client.build_request(
            "POST", path, json=payload, timeout=self.timeout
        )
        started = time.perf_counter()
        try:
            response = await self.client.send(request, stream=True)
        except httpx.TransportError as e:
            self._log_failure("POST", path, model, e)
            raise UpstreamUnreachable(self._url(path), _describe(e)) from e

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"[OUT] POST {self._url(path)} model={model} "
            f"status={response.status_code} {elapsed_ms}ms body=<stream>"
        )
        return UpstreamStream(response, self._url(path), deadline=self.deadline)

    async def invoke(
        self, path: str, payload: dict[str, Any], stream: bool, model: str = "-"
    ) -> UpstreamResponse | UpstreamStream:
        if stream:
            return await self.open_stream(path, payload, model=model)
        return await self.post(path, payload, model=model)

    async def _buffered(
        self, method: str, path: str, payload: dict[str, Any] | None, model: str
    ) -> UpstreamResponse:
        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.client.request(method, path, json=payload, timeout=self.timeout),
                self.deadline,
            )
        except asyncio.TimeoutError as e:
            reason = _deadline_reason(self.deadline)
            logger.warning(f"[OUT] {method} {self._url(path)} model={model} failed: {reason}")
            raise UpstreamUnreachable(self._url(path), reason) from e
        except httpx.TransportError as e:
            self._log_failure(method, path, model, e)
            raise UpstreamUnreachable(self._url(path), _describe(e)) from e

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"[OUT] {method} {self._url(path)} model={model} "
            f"status={response.status_code} {elapsed_ms}ms "
            f"body={preview(response.text, 200)}"
        )
        return UpstreamResponse(status=response.status_code, body=response.text)

    def _log_failure(self, method: str, path: str, model: str, e: Exception):
        logger.warning(
            f"[OUT] {method} {self._url(path)} model={model} failed: {_describe(e)}"
        )


def _deadline_reason(deadline: float) -> str:
    return f"no complete response within {deadline:g}s"


def _describe(e: Exception) -> str:
    return f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
