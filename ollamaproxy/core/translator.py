from __future__ import annotations

import json
import time
from typing import Any
from uuid import uuid4

from ollamaproxy.errors import UpstreamError
from ollamaproxy.schema.wire import (
    ChatCompletionResponse,
    Choice,
    Message,
    TextChoice,
    TextCompletionResponse,
    UsageStats,
)

FINISH_REASON = "stop"


def new_chat_id() -> str:
    return f"chatcmpl-{uuid4()}"


def new_completion_id() -> str:
    return f"cmpl-{uuid4()}"


def _load_object(body: str, path: str, status: int) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise UpstreamError(path, status, body) from e
    if not isinstance(data, dict):
        raise UpstreamError(path, status, body)
    return data


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _count(value: Any) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def usage_from(data: dict[str, Any]) -> UsageStats:
    prompt_tokens = _count(data.get("prompt_eval_count"))
    completion_tokens = _count(data.get("eval_count"))
    return UsageStats(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )


def translate_chat_response(
    body: str, model: str, path: str = "/api/chat", status: int = 200
) -> ChatCompletionResponse:
    data = _load_object(body, path, status)
    message = data.get("message")
    content = _text(message.get("content")) if isinstance(message, dict) else ""

    return ChatCompletionResponse(
        id=new_chat_id(),
        created=int(time.time()),
        model=model,
        choices=[
            Choice(
                index=0,
                message=Message(role="assistant", content=content),
                finish_reason=FINISH_REASON,
            )
        ],
        usage=usage_from(data),
    )


def translate_generate_response(
    body: str, model: str, path: str = "/api/generate", status: int = 200
) -> TextCompletionResponse:
    data = _load_object(body, path, status)

    return TextCompletionResponse(
        id=new_completion_id(),
        created=int(time.time()),
        model=model,
        choices=[
            TextChoice(index=0, text=_text(data.get("response")), finish_reason=FINISH_REASON)
        ],
        usage=usage_from(data),
    )
