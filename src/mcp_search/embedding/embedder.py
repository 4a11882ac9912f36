"""Embedding abstractions: remote inference adapter and deterministic baseline."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from hashlib import blake2b
from math import sqrt
from typing import Any

import httpx

from mcp_search.errors import UpstreamError
from mcp_search.types import EmbeddingVector

logger = logging.getLogger(__name__)


class Embedder(ABC):
    """Embedder interface used by the search tools."""

    @abstractmethod
    def embed_query(self, text: str) -> EmbeddingVector:
        """Embed one query."""

    def close(self) -> None:
        """Release any held resources."""


class HttpEmbedder(Embedder):
    """Calls a remote embedding service with `{"text": ...}`.

    Works against Workers AI (`/ai/run/<model>`), whose REST responses wrap the
    model output in a `{"success", "result", "errors"}` envelope, and against any
    service that returns the model output directly. The model output may be a
    bare vector or `{"data": [vector, ...]}`.
    """

    def __init__(
        self,
        url: str,
        *,
        api_token: str | None = None,
        timeout_seconds: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        headers = {"Content-Type": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout_seconds))
        self.headers = headers

    def embed_query(self, text: str) -> EmbeddingVector:
        try:
            response = self._client.post(self.url, json={"text": text}, headers=self.headers)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Embedding request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error("Embedding service returned status %s", response.status_code)
            raise UpstreamError(f"Embedding service returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError("Embedding service returned invalid JSON") from exc

        vector = normalize_embedding(unwrap_envelope(payload, "Embedding"))
        logger.debug("Embedded query into %d dimensions", len(vector))
        return vector

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class HashingEmbedder(Embedder):
    """Deterministic sparse-like embedding without external model calls.

    Used when no embedding service is configured, and in tests.
    """

    def __init__(self, dimension: int = 384) -> None:
        self.dimension = dimension

    def embed_query(self, text: str) -> EmbeddingVector:
        vector = [0.0 for _ in range(self.dimension)]
        tokens = text.lower().split()
        if not tokens:
            return vector

        for token in tokens:
            digest = blake2b(token.encode("utf-8"), digest_size=8).digest()
            idx = int.from_bytes(digest[:4], "little") % self.dimension
            sign = -1.0 if digest[4] % 2 else 1.0
            vector[idx] += sign

        norm = sqrt(sum(value * value for value in vector))
        if norm == 0:
            return vector
        return [value / norm for value in vector]


def unwrap_envelope(payload: Any, service: str) -> Any:
    """Return `result` from a Cloudflare API envelope, or the payload untouched."""

    if not isinstance(payload, dict) or "success" not in payload or "result" not in payload:
        return payload
    if not payload["success"]:
        errors = payload.get("errors") or []
        messages = [
            str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
        ]
        detail = "; ".join(messages) or "unknown error"
        raise UpstreamError(f"{service} service error: {detail}")
    return payload["result"]


def normalize_embedding(output: Any) -> EmbeddingVector:
    """Accept a bare vector or `{"data": [vector, ...]}` and return the vector."""

    vector = output
    if isinstance(output, dict):
        data = output.get("data")
        if not isinstance(data, list) or not data:
            raise UpstreamError("Embedding response is missing data[0]")
        vector = data[0]

    if not isinstance(vector, list) or not vector:
        raise UpstreamError("Embedding response is not a vector")
    if not all(isinstance(value, (int, float)) and not isinstance(value, bool) for value in vector):
        raise UpstreamError("Embedding vector contains non-numeric values")
    return [float(value) for value in vector]
