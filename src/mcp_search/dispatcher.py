"""Maps decoded MCP requests onto the tool registry."""

from __future__ import annotations

import logging
from typing import Any

from mcp_search.errors import UnsupportedMethodError
from mcp_search.tools.registry import ToolRegistry
from mcp_search.types import McpRequest, ToolCallParams, display_value, text_response

logger = logging.getLogger(__name__)

TOOLS_LIST = "tools/list"
TOOLS_CALL = "tools/call"


class McpDispatcher:
    """Stateless request handler; every call is classified independently."""

    def __init__(self, registry: ToolRegistry) -> None:
        self.registry = registry

    def handle(self, payload: Any) -> dict[str, Any]:
        request = McpRequest.parse(payload)
        method = display_value(request.method)
        logger.info("MCP request: %s", method)

        try:
            if request.method == TOOLS_LIST:
                return {"tools": self.registry.descriptors()}
            if request.method == TOOLS_CALL:
                return self._call_tool(request.params)
            raise UnsupportedMethodError(request.method)
        except Exception as exc:
            logger.warning("MCP %s failed: %s", method, exc)
            raise

    def _call_tool(self, params: Any) -> dict[str, Any]:
        call = ToolCallParams.parse(params)
        logger.info("Calling tool %s", display_value(call.name))
        text = self.registry.execute(call.name, call.argument_map())
        return text_response(text)
