"""FastAPI entrypoint: health check, MCP endpoint, CORS and usage banner."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from mcp_search.config import Settings
from mcp_search.dispatcher import McpDispatcher
from mcp_search.embedding.embedder import Embedder, HashingEmbedder, HttpEmbedder
from mcp_search.obs.log import create_logger
from mcp_search.retrieval.vector_index import HttpVectorIndex, InMemoryVectorIndex, VectorIndex
from mcp_search.tools.registry import ToolRegistry
from mcp_search.tools.search import register_search_tools
from mcp_search.types import ToolTrace

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

USAGE_BANNER = (
    "MCP Server on Cloudflare Workers\n\n"
    "Endpoints:\n"
    "POST /mcp - MCP protocol endpoint\n"
    "GET /health - Health check"
)

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]


def build_collaborators(settings: Settings) -> tuple[Embedder, VectorIndex]:
    """Build the embedder and index that `settings` describes.

    The offline pair is used only when neither service is configured; a
    half-configured upstream raises instead of querying an empty index.
    """
    upstream = settings.upstream
    embedding_url = upstream.resolved_embedding_url(settings.search.embedding_model)
    index_url = upstream.resolved_vector_query_url()

    if embedding_url is None and index_url is None:
        logger.warning("No upstream services configured; using hashing embedder and empty in-memory index")
        return HashingEmbedder(dimension=settings.search.embedding_dimension), InMemoryVectorIndex()
    if embedding_url is None:
        raise ValueError("Incomplete upstream configuration: no embedding service configured")
    if index_url is None:
        raise ValueError("Incomplete upstream configuration: no vector index configured")

    embedder = HttpEmbedder(
        embedding_url,
        api_token=upstream.embedding_token(),
        timeout_seconds=upstream.timeout_seconds,
    )
    index = HttpVectorIndex(
        index_url,
        api_token=upstream.index_token(),
        timeout_seconds=upstream.timeout_seconds,
        metadata_mode="all" if upstream.uses_cloudflare_index else True,
    )
    return embedder, index


def create_app(
    settings: Settings | None = None,
    *,
    embedder: Embedder | None = None,
    index: VectorIndex | None = None,
) -> FastAPI:
    """Assemble the HTTP app around one dispatcher.

    Collaborators default to whatever `settings` describes; tests pass fakes.
    """

    settings = settings or Settings.from_env()
    create_logger(settings.server.log_level)

    if embedder is None or index is None:
        built_embedder, built_index = build_collaborators(settings)
        if embedder is None:
            embedder = built_embedder
        else:
            built_embedder.close()
        if index is None:
            index = built_index
        else:
            built_index.close()

    registry = ToolRegistry()
    register_search_tools(registry, embedder, index, settings.search)
    registry.set_observer(_log_tool_trace)
    dispatcher = McpDispatcher(registry)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        embedder.close()
        index.close()

    app = FastAPI(
        title=settings.server.name,
        version=settings.server.version,
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def cors(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.api_route("/health", methods=_ALL_METHODS)
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "server": settings.server.name,
            "version": settings.server.version,
        }

    @app.post("/mcp")
    async def mcp(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
            result = await run_in_threadpool(dispatcher.handle, payload)
        except Exception as exc:
            message = str(exc) or "Unknown error"
            logger.error("MCP request failed: %s", message)
            return JSONResponse(status_code=500, content={"error": message})
        return JSONResponse(content=result)

    @app.api_route("/{path:path}", methods=_ALL_METHODS)
    def usage(path: str) -> PlainTextResponse:
        return PlainTextResponse(USAGE_BANNER)

    return app


def _log_tool_trace(trace: ToolTrace) -> None:
    logger.info("Tool %s finished in %.1f ms", trace.name, trace.latency_ms)


app = create_app()
