from __future__ import annotations

import time
from typing import AsyncIterator

from ollamaproxy.schema import SseEvent
from ollamaproxy.schema.wire import (
    ChatCompletionChunk,
    Delta,
    StreamingChoice,
    StreamingTextChoice,
    TextCompletionChunk,
)

DONE = "[DONE]"


def format_sse(data: str) -> str:
    return f"data: {data}\n\n"


async def chat_sse(
    events: AsyncIterator[SseEvent], chat_id: str, model: str
) -> AsyncIterator[str]:
    first_chunk = True

    async for event in events:
        if event.is_terminal:
            yield format_sse(DONE)
            continue

        delta = Delta(content=event.delta_text)
        if first_chunk:
            delta.role = "assistant"
            first_chunk = False

        chunk = ChatCompletionChunk(
            id=chat_id,
            model=model,
            created=int(time.time()),
            choices=[
                StreamingChoice(index=0, delta=delta, finish_reason=event.finish_reason)
            ],
        )
        yield format_sse(chunk.model_dump_json(exclude_none=True))


async def completion_sse(
    events: AsyncIterator[SseEvent], completion_id: str, model: str
) -> AsyncIterator[str]:
    async for event in events:
        if event.is_terminal:
            yield format_sse(DONE)
            continue

        chunk = TextCompletionChunk(
            id=completion_id,
            model=model,
            created=int(time.time()),
            choices=[
                StreamingTextChoice(
                    index=0, text=event.delta_text, finish_reason=event.finish_reason
                )
            ],
        )
        yield format_sse(chunk.model_dump_json(exclude_none=True))
