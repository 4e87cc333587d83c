from __future__ import annotations

import json

from fastapi import APIRouter, Request

from ollamaproxy.errors import UpstreamError
from ollamaproxy.schema.wire import ModelCard, ModelList

TAGS_PATH = "/api/tags"

router = APIRouter(prefix="/v1", tags=["models"])


def model_list_from_tags(body: str, status: int = 200) -> ModelList:
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise UpstreamError(TAGS_PATH, status, body) from e

    entries = data.get("models") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise UpstreamError(TAGS_PATH, status, body)

    cards = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name") or entry.get("model")
        if isinstance(name, str) and name:
            cards.append(ModelCard(id=name))
    return ModelList(data=cards)


@router.get("/models", response_model=ModelList)
async def list_models(request: Request):
    response = await request.app.state.invoker.get(TAGS_PATH)
    if not response.ok:
        raise UpstreamError(TAGS_PATH, response.status, response.body)
    return model_list_from_tags(response.body, status=response.status)
