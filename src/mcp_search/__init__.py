"""MCP semantic search server package."""

from .config import SearchConfig, Settings

__all__ = ["SearchConfig", "Settings"]
