from __future__ import annotations

import asyncio
import json
from contextlib import nullcontext
from typing import Any, NamedTuple

from ollamaproxy.core.model_names import DEFAULT_MODEL, resolve_model
from ollamaproxy.core.normalizer import parse_body
from ollamaproxy.core.upstream import UpstreamInvoker
from ollamaproxy.errors import MissingInput, UpstreamError
from ollamaproxy.log import logger, preview
from ollamaproxy.schema import EmbeddingBatch, EmbeddingResult
from ollamaproxy.schema.wire import (
    EmbeddingData,
    EmbeddingRequest,
    EmbeddingResponse,
    EmbeddingUsage,
)

EMBEDDINGS_PATH = "/api/embeddings"


class EmbeddingOutcome(NamedTuple):
    results: list[EmbeddingResult]
    prompt_tokens: int


def normalize_embedding_request(
    raw: bytes | str, default_model: str = DEFAULT_MODEL
) -> EmbeddingBatch:
    req = parse_body(raw, EmbeddingRequest)
    if req.input is None:
        raise MissingInput("input")

    inputs = [req.input] if isinstance(req.input, str) else list(req.input)
    if not inputs:
        raise MissingInput("input")

    return EmbeddingBatch(
        model=resolve_model(req.model, default=default_model).tag,
        inputs=tuple(inputs),
    )


def _is_vector(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(x, (int, float)) and not isinstance(x, bool) for x in value
    )


def extract_vectors(data: Any) -> list[list[float]]:
    """Pull every vector out of one backend embedding response.

    Handles ``{"embedding": [...]}``, ``{"embeddings": [[...], ...]}``, a flat
    ``{"embeddings": [...]}`` and one extra level of nesting. Anything else
    yields a single empty vector.
    """
    if isinstance(data, dict):
        single = data.get("embedding")
        if _is_vector(single):
            return [[float(x) for x in single]]

        multi = data.get("embeddings")
        if _is_vector(multi) and multi:
            return [[float(x) for x in multi]]
        if isinstance(multi, list):
            vectors: list[list[float]] = []
            for item in multi:
                if _is_vector(item):
                    vectors.append([float(x) for x in item])
                elif isinstance(item, list):
                    vectors.extend(
                        [float(x) for x in nested] for nested in item if _is_vector(nested)
                    )
            if vectors:
                return vectors

    return [[]]


def normalize_embedding_response(body: str) -> list[EmbeddingResult]:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        logger.warning(f"unrecognized embedding response: {preview(body)}")
        data = None
    return [
        EmbeddingResult(index=i, vector=vector)
        for i, vector in enumerate(extract_vectors(data))
    ]


def _prompt_tokens(body: str) -> int:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return 0
    count = data.get("prompt_eval_count") if isinstance(data, dict) else None
    return count if isinstance(count, int) and not isinstance(count, bool) else 0


class EmbeddingAggregator:
    """Fans a batch out as one backend call per input and reassembles by index."""

    def __init__(
        self,
        invoker: UpstreamInvoker,
        path: str = EMBEDDINGS_PATH,
        concurrency: int = 0,
    ):
        self.invoker = invoker
        self.path = path
        self.concurrency = concurrency

    async def embed(self, batch: EmbeddingBatch) -> EmbeddingOutcome:
        gate = asyncio.Semaphore(self.concurrency) if self.concurrency > 0 else nullcontext()

        async def _one(index: int, text: str) -> tuple[int, list[EmbeddingResult], int]:
            async with gate:
                response = await self.invoker.post(
                    self.path,
                    {"model": batch.model, "input": text, "prompt": text},
                    model=batch.model,
                )
            if not response.ok:
                raise UpstreamError(self.path, response.status, response.body)
            return index, normalize_embedding_response(response.body), _prompt_tokens(response.body)

        tasks = [asyncio.create_task(_one(i, text)) for i, text in enumerate(batch.inputs)]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            # a single failed input fails the whole batch
            for task in tasks:
                task.cancel()
        failed = [task for task in tasks if task in done and task.exception() is not None]
        if failed:
            await asyncio.gather(*tasks, return_exceptions=True)
            raise failed[0].exception()
        completed = [task.result() for task in tasks]

        results: list[EmbeddingResult] = []
        prompt_tokens = 0
        for _, partial, tokens in sorted(completed, key=lambda item: item[0]):
            for result in partial:
                results.append(EmbeddingResult(index=len(results), vector=result.vector))
            prompt_tokens += tokens
        return EmbeddingOutcome(results=results, prompt_tokens=prompt_tokens)


def build_embedding_response(model: str, outcome: EmbeddingOutcome) -> EmbeddingResponse:
    return EmbeddingResponse(
        data=[
            EmbeddingData(index=result.index, embedding=result.vector)
            for result in outcome.results
        ],
        model=model,
        usage=EmbeddingUsage(
            prompt_tokens=outcome.prompt_tokens, total_tokens=outcome.prompt_tokens
        ),
    )
