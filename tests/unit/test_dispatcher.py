import json
import logging

import pytest

from mcp_search.dispatcher import McpDispatcher
from mcp_search.embedding.embedder import HashingEmbedder
from mcp_search.errors import QueryValidationError, UnknownToolError, UnsupportedMethodError
from mcp_search.retrieval.vector_index import InMemoryVectorIndex
from mcp_search.tools.registry import ToolRegistry
from mcp_search.tools.search import register_search_tools


def _dispatcher() -> McpDispatcher:
    embedder = HashingEmbedder()
    index = InMemoryVectorIndex()
    index.upsert(
        "kb-1",
        embedder.embed_query("workers run at the edge"),
        {"content": "Workers run at the edge.", "category": "platform"},
    )
    registry = ToolRegistry()
    register_search_tools(registry, embedder, index)
    return McpDispatcher(registry)


def test_tools_list_is_static() -> None:
    dispatcher = _dispatcher()

    first = dispatcher.handle({"method": "tools/list"})
    second = dispatcher.handle({"method": "tools/list", "params": {"cursor": "ignored"}})

    assert first == second
    assert [tool["name"] for tool in first["tools"]] == ["semantic_search", "intelligent_search"]
    for tool in first["tools"]:
        assert tool["inputSchema"]["required"] == ["query"]
        assert "query" in tool["inputSchema"]["properties"]


def test_tools_call_wraps_text_content() -> None:
    result = _dispatcher().handle(
        {
            "jsonrpc": "2.0",
            "id": 7,
            "method": "tools/call",
            "params": {"name": "semantic_search", "arguments": {"query": "workers run at the edge"}},
        }
    )

    assert list(result) == ["content"]
    assert result["content"][0]["type"] == "text"
    payload = json.loads(result["content"][0]["text"])
    assert payload["results"][0]["id"] == "kb-1"
    assert payload["results"][0]["category"] == "platform"


def test_unknown_tool_and_unsupported_method() -> None:
    dispatcher = _dispatcher()

    with pytest.raises(UnknownToolError, match="^Unknown tool: foo$"):
        dispatcher.handle({"method": "tools/call", "params": {"name": "foo"}})

    with pytest.raises(UnsupportedMethodError, match="^Unsupported MCP method: ping$"):
        dispatcher.handle({"method": "ping"})


@pytest.mark.parametrize(
    ("payload", "error", "message"),
    [
        ([], UnsupportedMethodError, "Unsupported MCP method: undefined"),
        ({"params": {}}, UnsupportedMethodError, "Unsupported MCP method: undefined"),
        ({"method": 5}, UnsupportedMethodError, "Unsupported MCP method: 5"),
        ({"method": None}, UnsupportedMethodError, "Unsupported MCP method: null"),
        ({"method": "tools/call"}, UnknownToolError, "Unknown tool: undefined"),
        ({"method": "tools/call", "params": "x"}, UnknownToolError, "Unknown tool: undefined"),
        (
            {"method": "tools/call", "params": {"arguments": {"query": "q"}}},
            UnknownToolError,
            "Unknown tool: undefined",
        ),
        ({"method": "tools/call", "params": {"name": 42}}, UnknownToolError, "Unknown tool: 42"),
        (
            {"method": "tools/call", "params": {"name": "semantic_search", "arguments": ["q"]}},
            QueryValidationError,
            "Query parameter is required",
        ),
    ],
)
def test_malformed_requests_raise_mcp_errors(payload, error, message) -> None:
    with pytest.raises(error) as excinfo:
        _dispatcher().handle(payload)

    assert str(excinfo.value) == message


def test_failures_are_logged_before_propagating(caplog) -> None:
    dispatcher = _dispatcher()

    with caplog.at_level(logging.DEBUG, logger="mcp_search"):
        with pytest.raises(UnsupportedMethodError):
            dispatcher.handle({"method": "ping"})

    failures = [record for record in caplog.records if record.name == "mcp_search.dispatcher"]
    assert failures[-1].levelno == logging.WARNING
    assert "Unsupported MCP method: ping" in failures[-1].getMessage()


def test_search_queries_log_at_debug_only(caplog) -> None:
    dispatcher = _dispatcher()

    with caplog.at_level(logging.DEBUG, logger="mcp_search"):
        dispatcher.handle(
            {"method": "tools/call", "params": {"name": "semantic_search", "arguments": {"query": "secret text"}}}
        )

    query_records = [record for record in caplog.records if "secret text" in record.getMessage()]
    assert query_records
    assert all(record.levelno == logging.DEBUG for record in query_records)
