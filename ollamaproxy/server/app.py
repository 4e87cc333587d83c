from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ollamaproxy.core.embeddings import EmbeddingAggregator
from ollamaproxy.core.upstream import UpstreamInvoker
from ollamaproxy.errors import GatewayError
from ollamaproxy.log import configure_logging, logger
from ollamaproxy.server.apis import catalog, chat, embeddings
from ollamaproxy.server.config import Settings


async def gateway_error_handler(request: Request, exc: GatewayError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed", exc_info=exc)
    return JSONResponse(
        status_code=502,
        content={
            "error": {
                "message": "internal gateway error",
                "type": "gateway_error",
                "code": 502,
            }
        },
    )


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)

        client = httpx.AsyncClient(
            base_url=settings.OLLAMA_BASE,
            timeout=settings.UPSTREAM_TIMEOUT,
            transport=transport,
        )
        invoker = UpstreamInvoker(client, timeout=settings.UPSTREAM_TIMEOUT)
        app.state.invoker = invoker
        app.state.embeddings = EmbeddingAggregator(
            invoker, concurrency=settings.EMBEDDING_CONCURRENCY
        )
        logger.info(f"proxying to {settings.OLLAMA_BASE}")

        yield

        await client.aclose()

    app = FastAPI(lifespan=lifespan, title="ollamaproxy")
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(chat.router)
    app.include_router(embeddings.router)
    app.include_router(catalog.router)

    @app.get("/healthz")
    async def healthz():
        return {"ok": True, "upstream": settings.OLLAMA_BASE}

    return app
