import pytest

from ollamaproxy.core.model_names import (
    DEFAULT_CONTEXT_WINDOW,
    FAMILY_DEFAULT_TAGS,
    context_window_for,
    normalize_model_name,
    resolve_model,
)


@pytest.mark.parametrize("requested", [None, "", "   ", "\t\n"])
def test_blank_model_uses_default(requested):
    assert resolve_model(requested) == ("mistral:7b", 16384)


def test_blank_model_uses_configured_default():
    assert resolve_model("", default="phi3:mini") == ("phi3:mini", 8192)


@pytest.mark.parametrize(
    "requested, expected",
    [
        ("mistral", "mistral:7b"),
        ("llama3", "llama3:8b"),
        ("gemma", "gemma:7b"),
        ("phi3", "phi3:mini"),
        ("  Mistral ", "mistral:7b"),
        ("LLAMA3", "llama3:8b"),
    ],
)
def test_bare_family_alias(requested, expected):
    assert normalize_model_name(requested) == expected


@pytest.mark.parametrize(
    "requested, expected",
    [
        ("mistral:latest", "mistral:7b"),
        ("Llama3:LATEST", "llama3:8b"),
        ("phi3:latest", "phi3:mini"),
        ("nomic-embed-text:latest", "nomic-embed-text:latest"),
    ],
)
def test_latest_tag(requested, expected):
    assert normalize_model_name(requested) == expected


def test_concrete_tags_pass_through():
    assert normalize_model_name("mistral:7b-instruct-q4_0") == "mistral:7b-instruct-q4_0"
    assert normalize_model_name("qwen2:1.5b") == "qwen2:1.5b"


@pytest.mark.parametrize(
    "model, size",
    [
        ("mistral:7b", 16384),
        ("llama3:70b", 16384),
        ("Gemma:2b", 16384),
        ("phi3:mini", 8192),
        ("qwen2:7b", 8192),
        ("deepseek-r1:8b", DEFAULT_CONTEXT_WINDOW),
    ],
)
def test_context_window_by_family(model, size):
    assert context_window_for(model) == size


@pytest.mark.parametrize(
    "model",
    list(FAMILY_DEFAULT_TAGS) + list(FAMILY_DEFAULT_TAGS.values()) + ["qwen2:7b", "unknown:1b"],
)
def test_resolution_is_idempotent(model):
    once = resolve_model(model)
    assert resolve_model(once.tag) == once
