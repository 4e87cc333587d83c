from __future__ import annotations

from fastapi import APIRouter, Request

from ollamaproxy.core.embeddings import (
    build_embedding_response,
    normalize_embedding_request,
)
from ollamaproxy.log import logger, preview
from ollamaproxy.schema.wire import EmbeddingResponse

router = APIRouter(prefix="/v1", tags=["embeddings"])


@router.post("/embeddings", response_model=EmbeddingResponse)
async def embeddings(request: Request):
    settings = request.app.state.settings
    aggregator = request.app.state.embeddings

    batch = normalize_embedding_request(
        await request.body(), default_model=settings.DEFAULT_MODEL
    )
    logger.info(
        f"[IN ] /v1/embeddings model={batch.model} inputs={len(batch.inputs)} "
        f"preview={preview(batch.inputs[0], 200)}"
    )

    outcome = await aggregator.embed(batch)
    return build_embedding_response(batch.model, outcome)
