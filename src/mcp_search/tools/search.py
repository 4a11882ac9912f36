"""Semantic search tools: embed the query, then query the vector index."""

from __future__ import annotations

import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, ConfigDict

from mcp_search.config import SearchConfig
from mcp_search.embedding.embedder import Embedder
from mcp_search.errors import InvalidArgumentError, QueryValidationError
from mcp_search.retrieval.vector_index import VectorIndex
from mcp_search.tools.registry import ToolRegistry, ToolSpec
from mcp_search.types import UNDEFINED, VectorMatch, display_value

logger = logging.getLogger(__name__)

SYNTHESIS_INSTRUCTION = "Provide a direct, concise answer using only the information above."

SYNTHESIS_PROMPT = PromptTemplate.from_template(
    'Answer this question: "{query}"\n'
    "\n"
    "Based on these search results:\n"
    "\n"
    "{results}\n"
    "\n" + SYNTHESIS_INSTRUCTION
)


class SearchToolInput(BaseModel):
    """Raw tool arguments.

    Both fields are checked by the handler, query first, so a missing query
    always reports the same message whatever else was sent.
    """

    model_config = ConfigDict(extra="ignore")

    query: Any = None
    topK: Any = None


def effective_top_k(requested: Any, default: int, maximum: int = 10) -> int | float:
    """Clamp the requested result count to `maximum`.

    A missing or zero request falls back to `default`. Negative values are not
    corrected and reach the index as-is. Numeric strings are accepted; any
    other non-number raises `InvalidArgumentError`.
    """
    if not requested:
        return min(default, maximum)
    if isinstance(requested, bool):
        return min(int(requested), maximum)
    if isinstance(requested, (int, float)):
        return min(requested, maximum)
    if isinstance(requested, str):
        try:
            number = float(requested)
        except ValueError:
            raise InvalidArgumentError("topK", requested) from None
        if number != number:
            raise InvalidArgumentError("topK", requested)
        return min(int(number) if number.is_integer() else number, maximum)
    raise InvalidArgumentError("topK", requested)


def format_score(score: float, places: int) -> str:
    """Fixed-point score text, rounding ties away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(score).quantize(quantum, rounding=ROUND_HALF_UP))


def register_search_tools(
    registry: ToolRegistry,
    embedder: Embedder,
    index: VectorIndex,
    config: SearchConfig | None = None,
) -> None:
    """Register `semantic_search` and `intelligent_search`.

    Both tools run the same pipeline: validate the query, embed it, fetch the
    nearest matches with metadata. They differ in default result count and in
    how the matches are packaged.
    """

    config = config or SearchConfig()

    def _search(data: SearchToolInput, default_top_k: int) -> tuple[str, list[VectorMatch]]:
        query = data.query
        if not query:
            raise QueryValidationError()
        if not isinstance(query, str):
            raise QueryValidationError("Query parameter must be a string")
        top_k = effective_top_k(data.topK, default_top_k, config.max_top_k)

        vector = embedder.embed_query(query)
        matches = index.query(vector, top_k=top_k, return_metadata=True)
        logger.debug("Search for %r returned %d matches (topK=%s)", query, len(matches), top_k)
        return query, matches

    def _semantic_search(data: SearchToolInput) -> str:
        query, matches = _search(data, config.semantic_default_top_k)
        return _dump(
            {
                "query": query,
                "resultsCount": len(matches),
                "results": [_format_match(match) for match in matches],
            }
        )

    def _intelligent_search(data: SearchToolInput) -> str:
        query, matches = _search(data, config.intelligent_default_top_k)
        return _dump(
            {
                "query": query,
                "resultsCount": len(matches),
                "searchResults": [_format_match(match) for match in matches],
                "synthesisContext": build_synthesis_context(query, matches),
            }
        )

    registry.register(
        ToolSpec(
            name="semantic_search",
            description=(
                "Search the knowledge base using semantic similarity. "
                "Finds content based on meaning, not just keywords."
            ),
            input_schema=_input_schema(
                query_description="Natural language search query",
                top_k_description="Number of results to return (1-10)",
                default_top_k=config.semantic_default_top_k,
            ),
            args_schema=SearchToolInput,
            handler=_semantic_search,
            tags=["retrieval"],
        )
    )
    registry.register(
        ToolSpec(
            name="intelligent_search",
            description=(
                "Search with AI-powered synthesis. Returns search results plus "
                "context for intelligent answer generation."
            ),
            input_schema=_input_schema(
                query_description="Question or search query",
                top_k_description="Number of results to retrieve (1-10)",
                default_top_k=config.intelligent_default_top_k,
            ),
            args_schema=SearchToolInput,
            handler=_intelligent_search,
            tags=["retrieval", "synthesis"],
        )
    )


def build_synthesis_context(query: str, matches: list[VectorMatch]) -> str:
    blocks = [
        f"[{idx}] Relevance: {format_score(match.score, 2)}\n"
        f"Content: {_metadata_text(match, 'content')}\n"
        f"Category: {_metadata_text(match, 'category')}"
        for idx, match in enumerate(matches, start=1)
    ]
    return SYNTHESIS_PROMPT.format(query=query, results="\n\n".join(blocks))


def _format_match(match: VectorMatch) -> dict[str, Any]:
    item: dict[str, Any] = {"id": match.id, "score": format_score(match.score, 4)}
    # Absent metadata keys are left out; explicit nulls are kept.
    for key in ("content", "category"):
        if key in match.metadata:
            item[key] = match.metadata[key]
    return item


def _metadata_text(match: VectorMatch, key: str) -> str:
    return display_value(match.metadata.get(key, UNDEFINED))


def _dump(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _input_schema(*, query_description: str, top_k_description: str, default_top_k: int) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": query_description},
            "topK": {
                "type": "number",
                "description": top_k_description,
                "default": default_top_k,
            },
        },
        "required": ["query"],
    }
