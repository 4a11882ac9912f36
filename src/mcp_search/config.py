"""Configuration models for the MCP search server."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_EMBEDDING_MODEL = "@cf/baai/bge-small-en-v1.5"
CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"


class ServerConfig(BaseModel):
    """Identity reported by the health endpoint."""

    name: str = "mcp-server-worker"
    version: str = "1.0.0"
    log_level: str = "INFO"


class SearchConfig(BaseModel):
    """Configures top-k limits and the embedding model used by search tools."""

    max_top_k: int = Field(default=10, ge=1)
    semantic_default_top_k: int = Field(default=5, ge=1)
    intelligent_default_top_k: int = Field(default=3, ge=1)
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dimension: int = Field(default=384, ge=1)


class UpstreamConfig(BaseModel):
    """Locates the embedding and vector search collaborators."""

    cloudflare_account_id: str | None = None
    cloudflare_api_token: str | None = None
    vectorize_index: str | None = None
    embedding_url: str | None = None
    vector_query_url: str | None = None
    timeout_seconds: float = Field(default=30.0, gt=0.0)

    def resolved_embedding_url(self, model: str) -> str | None:
        if self.embedding_url:
            return self.embedding_url
        if self.cloudflare_account_id and self.cloudflare_api_token:
            return f"{CLOUDFLARE_API_BASE}/accounts/{self.cloudflare_account_id}/ai/run/{model}"
        return None

    def resolved_vector_query_url(self) -> str | None:
        if self.vector_query_url:
            return self.vector_query_url
        if self.cloudflare_account_id and self.cloudflare_api_token and self.vectorize_index:
            return (
                f"{CLOUDFLARE_API_BASE}/accounts/{self.cloudflare_account_id}"
                f"/vectorize/v2/indexes/{self.vectorize_index}/query"
            )
        return None

    @property
    def uses_cloudflare_embedding(self) -> bool:
        return not self.embedding_url and bool(self.cloudflare_account_id and self.cloudflare_api_token)

    @property
    def uses_cloudflare_index(self) -> bool:
        return not self.vector_query_url and self.resolved_vector_query_url() is not None

    def embedding_token(self) -> str | None:
        """Bearer token for the embedding service; only sent to Cloudflare."""
        return self.cloudflare_api_token if self.uses_cloudflare_embedding else None

    def index_token(self) -> str | None:
        return self.cloudflare_api_token if self.uses_cloudflare_index else None


class Settings(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from process environment variables."""

        return cls(
            server=ServerConfig(log_level=os.getenv("LOG_LEVEL", "INFO")),
            search=SearchConfig(
                embedding_model=os.getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            ),
            upstream=UpstreamConfig(
                cloudflare_account_id=os.getenv("CLOUDFLARE_ACCOUNT_ID") or None,
                cloudflare_api_token=os.getenv("CLOUDFLARE_API_TOKEN") or None,
                vectorize_index=os.getenv("VECTORIZE_INDEX") or None,
                embedding_url=os.getenv("EMBEDDING_URL") or None,
                vector_query_url=os.getenv("VECTOR_QUERY_URL") or None,
                timeout_seconds=float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30")),
            ),
        )
