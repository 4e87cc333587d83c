from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator


def _coerce_text(value: Any) -> Any:
    # JSON scalars and objects are kept as their JSON text
    if value is None or isinstance(value, (str, list)):
        return value
    return json.dumps(value)


# ---- inbound (front API) ----


class ContentPart(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str | None = None
    text: str | None = None

    @field_validator("text", mode="before")
    @classmethod
    def _text_shape(cls, value: Any) -> Any:
        return _coerce_text(value)


class RequestMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: str | None = None
    content: str | list[ContentPart] | None = None

    @field_validator("content", mode="before")
    @classmethod
    def _content_shape(cls, value: Any) -> Any:
        value = _coerce_text(value)
        if isinstance(value, list):
            # bare strings and other non-object parts carry no "type" and are dropped later
            return [part for part in value if isinstance(part, dict)]
        return value


class GenerationFields(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    stream: bool | None = None


class ChatCompletionRequest(GenerationFields):
    messages: list[RequestMessage] | None = None


class CompletionRequest(GenerationFields):
    prompt: str | list[str] | None = None

    @field_validator("prompt", mode="before")
    @classmethod
    def _prompt_shape(cls, value: Any) -> Any:
        value = _coerce_text(value)
        if isinstance(value, list):
            return ["" if item is None else str(item) for item in value]
        return value


class EmbeddingRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: str | None = None
    input: str | list[str] | None = None

    @field_validator("input", mode="before")
    @classmethod
    def _input_shape(cls, value: Any) -> Any:
        value = _coerce_text(value)
        if isinstance(value, list):
            return [
                "" if item is None else item if isinstance(item, str) else json.dumps(item)
                for item in value
            ]
        return value


# ---- outbound (front API) ----


class Message(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class Choice(BaseModel):
    index: int
    message: Message
    finish_reason: Literal["stop", "length"]


class UsageStats(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    id: str  # e.g. f"chatcmpl-{uuid4()}"
    object: str = "chat.completion"
    created: int
    model: str
    choices: list[Choice]
    usage: UsageStats


class TextChoice(BaseModel):
    index: int
    text: str
    finish_reason: Literal["stop", "length"]


class TextCompletionResponse(BaseModel):
    id: str  # e.g. f"cmpl-{uuid4()}"
    object: str = "text_completion"
    created: int
    model: str
    choices: list[TextChoice]
    usage: UsageStats


class Delta(BaseModel):
    role: Literal["assistant"] | None = None  # only set on the first chunk
    content: str | None = None


class StreamingChoice(BaseModel):
    index: int
    delta: Delta
    finish_reason: Literal["stop", "length"] | None  # None on content chunks


class ChatCompletionChunk(BaseModel):
    id: str  # same id held for all chunks in a response
    object: str = "chat.completion.chunk"
    created: int
    model: str
    choices: list[StreamingChoice]


class StreamingTextChoice(BaseModel):
    index: int
    text: str
    finish_reason: Literal["stop", "length"] | None


class TextCompletionChunk(BaseModel):
    id: str
    object: str = "text_completion"
    created: int
    model: str
    choices: list[StreamingTextChoice]


class EmbeddingData(BaseModel):
    object: str = "embedding"
    index: int
    embedding: list[float]


class EmbeddingUsage(BaseModel):
    prompt_tokens: int = 0
    total_tokens: int = 0


class EmbeddingResponse(BaseModel):
    object: str = "list"
    data: list[EmbeddingData]
    model: str
    usage: EmbeddingUsage


class ModelCard(BaseModel):
    id: str
    object: str = "model"
    owned_by: str = "ollama"


class ModelList(BaseModel):
    object: str = "list"
    data: list[ModelCard]
