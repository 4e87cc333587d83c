from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_TEMPERATURE = 0.2
DEFAULT_TOP_P = 0.9
DEFAULT_MAX_TOKENS = 512


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def to_backend(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class GenerationParams:
    context_window: int
    temperature: float = DEFAULT_TEMPERATURE
    top_p: float = DEFAULT_TOP_P
    max_tokens: int = DEFAULT_MAX_TOKENS
    stream: bool = False

    def to_backend_options(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "num_ctx": self.context_window,
            "num_predict": self.max_tokens,
        }


@dataclass(frozen=True)
class CanonicalChatRequest:
    model: str
    params: GenerationParams
    messages: tuple[ChatMessage, ...] = field(default_factory=tuple)

    def to_backend_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [message.to_backend() for message in self.messages],
            "stream": self.params.stream,
            "options": self.params.to_backend_options(),
        }


@dataclass(frozen=True)
class CanonicalCompletionRequest:
    model: str
    params: GenerationParams
    prompt: str = ""

    def to_backend_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "prompt": self.prompt,
            "stream": self.params.stream,
            "options": self.params.to_backend_options(),
        }
