import asyncio
import json
import time

import pytest

from ollamaproxy.core.embeddings import (
    EmbeddingAggregator,
    build_embedding_response,
    extract_vectors,
    normalize_embedding_request,
    normalize_embedding_response,
)
from ollamaproxy.core.upstream import UpstreamResponse
from ollamaproxy.errors import MalformedRequest, MissingInput, UpstreamError
from ollamaproxy.schema import EmbeddingBatch, EmbeddingResult


class FakeInvoker:
    """Answers embedding calls with a vector derived from the text.

    ``delays`` lets a test make earlier inputs finish later.
    """

    def __init__(self, delays=None, status=200, body_for=None):
        self.calls = []
        self.delays = delays or {}
        self.status = status
        self.body_for = body_for or (lambda text: {"embedding": [float(len(text)), 1.0]})
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = []

    async def post(self, path, payload, model="-"):
        self.calls.append((path, payload))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(payload["input"], 0))
        except asyncio.CancelledError:
            self.cancelled.append(payload["input"])
            raise
        finally:
            self.in_flight -= 1
        if isinstance(self.status, dict):
            status = self.status.get(payload["input"], 200)
        else:
            status = self.status
        return UpstreamResponse(status=status, body=json.dumps(self.body_for(payload["input"])))


def test_request_single_string():
    batch = normalize_embedding_request(b'{"model": "nomic-embed-text", "input": "hello"}')
    assert batch == EmbeddingBatch(model="nomic-embed-text", inputs=("hello",))


def test_request_list_is_coerced_to_text():
    batch = normalize_embedding_request(b'{"input": ["a", null, 3]}')
    assert batch.inputs == ("a", "", "3")
    assert batch.model == "mistral:7b"


@pytest.mark.parametrize("raw", [b"{}", b'{"input": null}', b'{"input": []}'])
def test_request_missing_input(raw):
    with pytest.raises(MissingInput):
        normalize_embedding_request(raw)


def test_missing_input_is_a_malformed_request():
    assert issubclass(MissingInput, MalformedRequest)


def test_response_single_shape():
    assert normalize_embedding_response('{"embedding": [0.1, 0.2]}') == [
        EmbeddingResult(index=0, vector=[0.1, 0.2])
    ]


def test_response_plural_shape_yields_every_vector():
    results = normalize_embedding_response('{"embeddings": [[1, 2], [3, 4]]}')
    assert results == [
        EmbeddingResult(index=0, vector=[1.0, 2.0]),
        EmbeddingResult(index=1, vector=[3.0, 4.0]),
    ]


@pytest.mark.parametrize(
    "data, expected",
    [
        ({"embeddings": [0.5, 0.25]}, [[0.5, 0.25]]),
        ({"embeddings": [[[1, 2]], [[3]]]}, [[1.0, 2.0], [3.0]]),
        ({"data": {"embedding": [1, 2]}}, [[]]),
        ({"embeddings": []}, [[]]),
        ({"embedding": "nope"}, [[]]),
        ([1, 2, 3], [[]]),
        (None, [[]]),
    ],
)
def test_extract_vectors_degenerate_shapes(data, expected):
    assert extract_vectors(data) == expected


def test_response_unparseable_falls_back_to_empty_vector():
    assert normalize_embedding_response("not json") == [EmbeddingResult(index=0, vector=[])]


@pytest.mark.asyncio
async def test_single_input_makes_one_call():
    invoker = FakeInvoker()
    outcome = await EmbeddingAggregator(invoker).embed(
        EmbeddingBatch(model="nomic-embed-text", inputs=("hello",))
    )
    assert len(invoker.calls) == 1
    path, payload = invoker.calls[0]
    assert path == "/api/embeddings"
    assert payload["model"] == "nomic-embed-text"
    assert payload["input"] == "hello"
    assert outcome.results == [EmbeddingResult(index=0, vector=[5.0, 1.0])]


@pytest.mark.asyncio
async def test_results_follow_input_order_not_completion_order():
    invoker = FakeInvoker(delays={"a": 0.05, "bb": 0.0})
    outcome = await EmbeddingAggregator(invoker).embed(
        EmbeddingBatch(model="m", inputs=("a", "bb"))
    )
    # "bb" finished first
    assert [payload["input"] for _, payload in invoker.calls] == ["a", "bb"]
    assert outcome.results == [
        EmbeddingResult(index=0, vector=[1.0, 1.0]),
        EmbeddingResult(index=1, vector=[2.0, 1.0]),
    ]
    assert invoker.max_in_flight == 2


@pytest.mark.asyncio
async def test_concurrency_bound():
    invoker = FakeInvoker(delays={"a": 0.01, "b": 0.01, "c": 0.01})
    await EmbeddingAggregator(invoker, concurrency=1).embed(
        EmbeddingBatch(model="m", inputs=("a", "b", "c"))
    )
    assert invoker.max_in_flight == 1


@pytest.mark.asyncio
async def test_any_failure_fails_the_batch():
    invoker = FakeInvoker(status={"b": 500})
    with pytest.raises(UpstreamError) as info:
        await EmbeddingAggregator(invoker).embed(
            EmbeddingBatch(model="m", inputs=("a", "b", "c"))
        )
    assert info.value.status == 500


@pytest.mark.asyncio
async def test_failure_cancels_calls_still_in_flight():
    invoker = FakeInvoker(delays={"slow": 5.0}, status={"bad": 500})
    started = time.perf_counter()
    with pytest.raises(UpstreamError):
        await EmbeddingAggregator(invoker).embed(
            EmbeddingBatch(model="m", inputs=("slow", "bad"))
        )
    assert time.perf_counter() - started < 1.0
    assert invoker.cancelled == ["slow"]
    assert invoker.in_flight == 0


@pytest.mark.asyncio
async def test_prompt_tokens_are_summed():
    invoker = FakeInvoker(body_for=lambda text: {"embedding": [1.0], "prompt_eval_count": 2})
    outcome = await EmbeddingAggregator(invoker).embed(
        EmbeddingBatch(model="m", inputs=("a", "b"))
    )
    response = build_embedding_response("m", outcome)
    assert response.usage.prompt_tokens == 4
    assert response.usage.total_tokens == 4
    assert [d.index for d in response.data] == [0, 1]
    assert response.object == "list"
