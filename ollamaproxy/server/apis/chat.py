from __future__ import annotations

import json
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ollamaproxy.core.normalizer import (
    normalize_chat_request,
    normalize_completion_request,
)
from ollamaproxy.core.stream import translate_stream
from ollamaproxy.core.translator import (
    new_chat_id,
    new_completion_id,
    translate_chat_response,
    translate_generate_response,
)
from ollamaproxy.core.upstream import UpstreamStream
from ollamaproxy.errors import GatewayError, UnsupportedOperation, UpstreamError
from ollamaproxy.log import logger, preview
from ollamaproxy.schema.wire import ChatCompletionResponse, TextCompletionResponse
from ollamaproxy.server.sse import chat_sse, completion_sse

CHAT_PATH = "/api/chat"
GENERATE_PATH = "/api/generate"

router = APIRouter(prefix="/v1", tags=["chat"])


async def _open_checked_stream(
    request: Request, path: str, payload: dict, model: str
) -> UpstreamStream:
    invoker = request.app.state.invoker
    upstream = await invoker.invoke(path, payload, stream=True, model=model)
    if not upstream.ok:
        try:
            body = await upstream.read_text()
        finally:
            await upstream.aclose()
        raise UpstreamError(path, upstream.status, body)
    return upstream


async def _relay(upstream: UpstreamStream, frames: AsyncIterator[str]) -> AsyncIterator[str]:
    # Starlette cancels this generator when the client goes away; closing the
    # backend response in ``finally`` stops the read loop with it.
    try:
        async for frame in frames:
            yield frame
    except GatewayError as e:
        # headers are already sent, so the only option is to end the stream
        logger.error(f"stream from {upstream.url} aborted: {e.message}")
    finally:
        await upstream.aclose()


def _event_stream(upstream: UpstreamStream, frames: AsyncIterator[str]) -> StreamingResponse:
    return StreamingResponse(
        _relay(upstream, frames),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
        background=BackgroundTask(upstream.aclose),
    )


@router.post("/chat/completions", response_model=ChatCompletionResponse)
async def chat_completions(request: Request):
    settings = request.app.state.settings
    invoker = request.app.state.invoker

    req = normalize_chat_request(await request.body(), default_model=settings.DEFAULT_MODEL)
    payload = req.to_backend_payload()
    logger.info(
        f"[IN ] /v1/chat/completions model={req.model} "
        f"preview={preview(json.dumps(payload), 400)}"
    )

    if not req.params.stream:
        response = await invoker.invoke(CHAT_PATH, payload, stream=False, model=req.model)
        if not response.ok:
            raise UpstreamError(CHAT_PATH, response.status, response.body)
        return translate_chat_response(response.body, req.model, status=response.status)

    if not settings.capabilities.chat_streaming:
        raise UnsupportedOperation("stream=true is disabled for /v1/chat/completions")

    upstream = await _open_checked_stream(request, CHAT_PATH, payload, req.model)
    events = translate_stream(upstream.aiter_bytes())
    return _event_stream(upstream, chat_sse(events, chat_id=new_chat_id(), model=req.model))


@router.post("/completions", response_model=TextCompletionResponse)
async def completions(request: Request):
    settings = request.app.state.settings
    invoker = request.app.state.invoker

    req = normalize_completion_request(
        await request.body(), default_model=settings.DEFAULT_MODEL
    )
    payload = req.to_backend_payload()
    logger.info(
        f"[IN ] /v1/completions model={req.model} "
        f"preview={preview(json.dumps(payload), 400)}"
    )

    if req.params.stream and not settings.capabilities.completions_streaming:
        raise UnsupportedOperation(
            "stream=true is not implemented for /v1/completions; "
            "use /v1/chat/completions for streaming"
        )

    if not req.params.stream:
        response = await invoker.invoke(
            GENERATE_PATH, payload, stream=False, model=req.model
        )
        if not response.ok:
            raise UpstreamError(GENERATE_PATH, response.status, response.body)
        return translate_generate_response(response.body, req.model, status=response.status)

    upstream = await _open_checked_stream(request, GENERATE_PATH, payload, req.model)
    events = translate_stream(upstream.aiter_bytes())
    return _event_stream(
        upstream, completion_sse(events, completion_id=new_completion_id(), model=req.model)
    )
