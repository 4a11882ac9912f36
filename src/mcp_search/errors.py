"""Error family raised while handling MCP requests.

Every error surfaces at the HTTP boundary as a 500 response carrying the
exception message, so messages here are part of the public contract.
"""

from __future__ import annotations

from mcp_search.types import display_value


class McpError(Exception):
    """Base class for request handling errors."""


class QueryValidationError(McpError):
    """A search tool was called without a usable query."""

    def __init__(self, message: str = "Query parameter is required") -> None:
        super().__init__(message)


class InvalidArgumentError(McpError):
    def __init__(self, name: str, value: object) -> None:
        self.name = name
        super().__init__(f"Invalid {name}: {display_value(value)}")


class UnknownToolError(McpError):
    def __init__(self, name: object) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {display_value(name)}")


class UnsupportedMethodError(McpError):
    def __init__(self, method: object) -> None:
        self.method = method
        super().__init__(f"Unsupported MCP method: {display_value(method)}")


class UpstreamError(McpError):
    """Embedding or vector search backend failed or returned an unusable payload."""
