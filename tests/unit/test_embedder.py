import json

import httpx
import pytest

from mcp_search.embedding.embedder import HashingEmbedder, HttpEmbedder, normalize_embedding
from mcp_search.errors import UpstreamError


def _embedder(handler, **kwargs) -> HttpEmbedder:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpEmbedder("https://embed.test/ai/run/model", client=client, **kwargs)


def test_http_embedder_sends_text_and_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[0.25, 0.5, 0.75])

    vector = _embedder(handler, api_token="secret").embed_query("hello world")

    assert vector == [0.25, 0.5, 0.75]
    assert json.loads(seen[0].content) == {"text": "hello world"}
    assert seen[0].headers["Authorization"] == "Bearer secret"


def test_http_embedder_unwraps_cloudflare_envelope_and_data_wrapper() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "success": True,
                "errors": [],
                "messages": [],
                "result": {"shape": [1, 3], "data": [[1, 2, 3]]},
            },
        )

    assert _embedder(handler).embed_query("q") == [1.0, 2.0, 3.0]


def test_http_embedder_reports_envelope_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"success": False, "result": None, "errors": [{"code": 5007, "message": "No such model"}]},
        )

    with pytest.raises(UpstreamError, match="No such model"):
        _embedder(handler).embed_query("q")


def test_http_embedder_maps_http_status_and_transport_errors() -> None:
    with pytest.raises(UpstreamError, match="status 503"):
        _embedder(lambda request: httpx.Response(503, text="busy")).embed_query("q")

    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError, match="Embedding request failed"):
        _embedder(broken).embed_query("q")


def test_http_embedder_rejects_non_json_body() -> None:
    with pytest.raises(UpstreamError, match="invalid JSON"):
        _embedder(lambda request: httpx.Response(200, text="<html>")).embed_query("q")


@pytest.mark.parametrize(
    "output",
    [{}, {"data": []}, {"data": "nope"}, [], ["a", "b"], "vector", [True, False]],
)
def test_normalize_embedding_rejects_malformed_output(output) -> None:
    with pytest.raises(UpstreamError):
        normalize_embedding(output)


def test_hashing_embedder_is_deterministic_and_normalized() -> None:
    embedder = HashingEmbedder(dimension=384)

    first = embedder.embed_query("Reset my password")
    second = embedder.embed_query("reset my password")

    assert len(first) == 384
    assert first == second
    assert abs(sum(value * value for value in first) - 1.0) < 1e-9
    assert embedder.embed_query("   ") == [0.0] * 384
