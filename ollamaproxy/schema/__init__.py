from .embedding import EmbeddingBatch, EmbeddingResult
from .request import (
    CanonicalChatRequest,
    CanonicalCompletionRequest,
    ChatMessage,
    GenerationParams,
)
from .stream import BackendStreamFragment, SseEvent


__all__ = [
    "BackendStreamFragment",
    "CanonicalChatRequest",
    "CanonicalCompletionRequest",
    "ChatMessage",
    "EmbeddingBatch",
    "EmbeddingResult",
    "GenerationParams",
    "SseEvent",
]
