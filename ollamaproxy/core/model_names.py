from __future__ import annotations

from typing import NamedTuple

DEFAULT_MODEL = "mistral:7b"
DEFAULT_CONTEXT_WINDOW = 8192

# family -> concrete tag used for bare names and ":latest"
FAMILY_DEFAULT_TAGS: dict[str, str] = {
    "mistral": "mistral:7b",
    "llama3": "llama3:8b",
    "gemma": "gemma:7b",
    "phi3": "phi3:mini",
}

# checked in order against the lowercased tag
CONTEXT_WINDOWS: tuple[tuple[str, int], ...] = (
    ("mistral", 16384),
    ("llama3", 16384),
    ("gemma", 16384),
    ("phi3", 8192),
    ("qwen2", 8192),
)

LATEST_SUFFIX = ":latest"


class ResolvedModel(NamedTuple):
    tag: str
    context_window: int


def normalize_model_name(model: str | None, default: str = DEFAULT_MODEL) -> str:
    if model is None or not model.strip():
        return default
    model = model.strip()
    lowered = model.lower()

    if lowered in FAMILY_DEFAULT_TAGS:
        return FAMILY_DEFAULT_TAGS[lowered]

    if lowered.endswith(LATEST_SUFFIX):
        family = lowered.split(":", 1)[0]
        return FAMILY_DEFAULT_TAGS.get(family, model)

    return model


def context_window_for(model: str) -> int:
    lowered = model.lower()
    for prefix, size in CONTEXT_WINDOWS:
        if lowered.startswith(prefix):
            return size
    return DEFAULT_CONTEXT_WINDOW


def resolve_model(model: str | None, default: str = DEFAULT_MODEL) -> ResolvedModel:
    tag = normalize_model_name(model, default=default)
    return ResolvedModel(tag=tag, context_window=context_window_for(tag))
