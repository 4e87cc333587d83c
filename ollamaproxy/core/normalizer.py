from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ollamaproxy.core.model_names import DEFAULT_MODEL, resolve_model
from ollamaproxy.errors import MalformedRequest
from ollamaproxy.schema import (
    CanonicalChatRequest,
    CanonicalCompletionRequest,
    ChatMessage,
    GenerationParams,
)
from ollamaproxy.schema.request import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
)
from ollamaproxy.schema.wire import (
    ChatCompletionRequest,
    CompletionRequest,
    ContentPart,
    GenerationFields,
    RequestMessage,
)

DEFAULT_ROLE = "user"

_M = TypeVar("_M", bound=BaseModel)


def parse_body(raw: bytes | str, model_cls: type[_M]) -> _M:
    """Decode a raw request body into ``model_cls``.

    Anything that is not a JSON object, or carries a field of the wrong type,
    is a ``MalformedRequest``.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedRequest(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedRequest("Invalid JSON: request body must be an object")

    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(loc) for loc in err["loc"]) or "body" for err in e.errors()
        )
        raise MalformedRequest(f"Invalid request field(s): {fields}") from e


def flatten_content(content: str | list[ContentPart] | None) -> str:
    if content is None:
        return ""
    if isinstance(content, list):
        return "\n".join(
            part.text or "" for part in content if part.type == "text"
        )
    return content


def normalize_message(message: RequestMessage) -> ChatMessage:
    return ChatMessage(
        role=message.role or DEFAULT_ROLE,
        content=flatten_content(message.content),
    )


def build_params(fields: GenerationFields, context_window: int) -> GenerationParams:
    return GenerationParams(
        context_window=context_window,
        temperature=_or_default(fields.temperature, DEFAULT_TEMPERATURE),
        top_p=_or_default(fields.top_p, DEFAULT_TOP_P),
        max_tokens=_or_default(fields.max_tokens, DEFAULT_MAX_TOKENS),
        stream=_or_default(fields.stream, False),
    )


def _or_default(value: Any, default: Any) -> Any:
    return default if value is None else value


def normalize_chat_request(
    raw: bytes | str, default_model: str = DEFAULT_MODEL
) -> CanonicalChatRequest:
    req = parse_body(raw, ChatCompletionRequest)
    resolved = resolve_model(req.model, default=default_model)
    return CanonicalChatRequest(
        model=resolved.tag,
        params=build_params(req, resolved.context_window),
        messages=tuple(normalize_message(m) for m in req.messages or []),
    )


def normalize_completion_request(
    raw: bytes | str, default_model: str = DEFAULT_MODEL
) -> CanonicalCompletionRequest:
    req = parse_body(raw, CompletionRequest)
    resolved = resolve_model(req.model, default=default_model)
    prompt = req.prompt
    if isinstance(prompt, list):
        prompt = "\n".join(prompt)
    return CanonicalCompletionRequest(
        model=resolved.tag,
        params=build_params(req, resolved.context_window),
        prompt=prompt or "",
    )
