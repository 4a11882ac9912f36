"""Vector index contract and concrete adapters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from math import sqrt
from typing import Any, Protocol

import httpx

from mcp_search.embedding.embedder import unwrap_envelope
from mcp_search.errors import UpstreamError
from mcp_search.types import EmbeddingVector, VectorMatch

logger = logging.getLogger(__name__)


class VectorIndex(Protocol):
    """Minimal nearest-neighbour contract used by the search tools."""

    def query(
        self,
        vector: EmbeddingVector,
        *,
        top_k: int | float,
        return_metadata: bool = True,
    ) -> list[VectorMatch]:
        """Return the matches closest to `vector`, best first."""

    def close(self) -> None:
        """Release any held resources."""


class HttpVectorIndex:
    """Queries a remote index with `{"vector", "topK", "returnMetadata"}`.

    Cloudflare Vectorize v2 expects `returnMetadata` to be `"all"`, `"indexed"`
    or `"none"` rather than a boolean; `metadata_mode` overrides the value sent
    when metadata is requested.
    """

    def __init__(
        self,
        url: str,
        *,
        api_token: str | None = None,
        timeout_seconds: float = 30.0,
        metadata_mode: bool | str = True,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.metadata_mode = metadata_mode
        headers = {"Content-Type": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout_seconds))
        self.headers = headers

    def query(
        self,
        vector: EmbeddingVector,
        *,
        top_k: int | float,
        return_metadata: bool = True,
    ) -> list[VectorMatch]:
        if return_metadata:
            metadata_flag = self.metadata_mode
        else:
            metadata_flag = "none" if isinstance(self.metadata_mode, str) else False
        body = {"vector": vector, "topK": top_k, "returnMetadata": metadata_flag}
        try:
            response = self._client.post(self.url, json=body, headers=self.headers)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Vector search request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error("Vector search returned status %s", response.status_code)
            raise UpstreamError(f"Vector search returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError("Vector search returned invalid JSON") from exc

        matches = parse_matches(unwrap_envelope(payload, "Vector search"))
        logger.debug("Vector search returned %d matches for topK=%s", len(matches), top_k)
        return matches

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


@dataclass(slots=True)
class _StoredVector:
    vector: EmbeddingVector
    metadata: dict[str, Any]


class InMemoryVectorIndex:
    """Deterministic cosine index used for tests and local prototyping."""

    def __init__(self) -> None:
        self._store: dict[str, _StoredVector] = {}

    def __len__(self) -> int:
        return len(self._store)

    def upsert(
        self,
        vector_id: str,
        vector: EmbeddingVector,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self._store[vector_id] = _StoredVector(vector=vector, metadata=dict(metadata or {}))

    def query(
        self,
        vector: EmbeddingVector,
        *,
        top_k: int | float,
        return_metadata: bool = True,
    ) -> list[VectorMatch]:
        limit = int(top_k)
        if limit <= 0:
            return []
        ranked = sorted(
            (
                VectorMatch(
                    id=vector_id,
                    score=_cosine_similarity(vector, record.vector),
                    metadata=dict(record.metadata) if return_metadata else {},
                )
                for vector_id, record in self._store.items()
            ),
            key=lambda match: match.score,
            reverse=True,
        )
        return ranked[:limit]

    def close(self) -> None:
        return None


def parse_matches(result: Any) -> list[VectorMatch]:
    """Convert a `{"matches": [{id, score, metadata?}]}` payload."""

    if not isinstance(result, dict) or not isinstance(result.get("matches"), list):
        raise UpstreamError("Vector search response is missing matches")

    matches: list[VectorMatch] = []
    for raw in result["matches"]:
        if not isinstance(raw, dict) or "id" not in raw or "score" not in raw:
            raise UpstreamError("Vector search returned a malformed match")
        try:
            score = float(raw["score"])
        except (TypeError, ValueError) as exc:
            raise UpstreamError("Vector search returned a non-numeric score") from exc
        metadata = raw.get("metadata")
        matches.append(
            VectorMatch(
                id=str(raw["id"]),
                score=score,
                metadata=metadata if isinstance(metadata, dict) else {},
            )
        )
    return matches


def _cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)
