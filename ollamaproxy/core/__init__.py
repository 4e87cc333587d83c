from .embeddings import EmbeddingAggregator
from .model_names import ResolvedModel, resolve_model
from .stream import LineBuffer, translate_stream
from .upstream import UpstreamInvoker, UpstreamResponse, UpstreamStream


__all__ = [
    "EmbeddingAggregator",
    "LineBuffer",
    "ResolvedModel",
    "UpstreamInvoker",
    "UpstreamResponse",
    "UpstreamStream",
    "resolve_model",
    "translate_stream",
]
