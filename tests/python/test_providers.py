import asyncio
import json
import math

import httpx
import pytest

from convergent.app.providers import OpenAIChatGenerator, ProviderError, ScriptedGenerator
from convergent.sim.systems.consensus import parse_vote


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_scripted_generator_emits_parseable_votes():
    generator = ScriptedGenerator(seed=3)
    replies = [asyncio.run(generator("sys", "user", 0.7, 100)) for _ in range(10)]
    assert generator.calls == 10
    for reply in replies:
        text, vote = parse_vote(reply)
        assert text
        assert vote.stance in (-1, 0, 1)
        assert vote.proposal in ScriptedGenerator.PROPOSALS


def test_scripted_generator_without_votes():
    reply = asyncio.run(ScriptedGenerator(seed=1, vote=False)("sys", "user", 0.7, 100))
    assert "<META" not in reply


def test_scripted_embedding_is_normalized():
    generator = ScriptedGenerator(seed=1)
    vector = asyncio.run(generator.embed("run a regional pilot"))
    assert len(vector) == 32
    assert math.sqrt(sum(v * v for v in vector)) == pytest.approx(1.0)
    assert asyncio.run(generator.embed("")) == [0.0] * 32


def test_chat_completion_request_and_reply():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "  Hi there.  "}}]})

    async def call():
        generator = OpenAIChatGenerator("test-model", api_key="k", base_url="http://llm.local/v1/", client=_client(handler))
        try:
            return await generator("system text", "user text", 0.4, 64)
        finally:
            await generator.aclose()

    assert asyncio.run(call()) == "Hi there."
    assert seen["url"] == "http://llm.local/v1/chat/completions"
    assert seen["auth"] == "Bearer k"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["max_tokens"] == 64
    assert seen["body"]["messages"][0] == {"role": "system", "content": "system text"}


def test_http_error_becomes_provider_error():
    def handler(request):
        return httpx.Response(503, json={"error": "busy"})

    async def call():
        generator = OpenAIChatGenerator(api_key="k", client=_client(handler))
        return await generator("s", "u", 0.5, 10)

    with pytest.raises(ProviderError, match="503"):
        asyncio.run(call())


def test_missing_api_key_is_rejected(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    def handler(request):
        return httpx.Response(200, json={})

    async def call():
        generator = OpenAIChatGenerator(client=_client(handler))
        return await generator("s", "u", 0.5, 10)

    with pytest.raises(ProviderError, match="API key"):
        asyncio.run(call())


def test_embedding_request():
    def handler(request):
        assert request.url.path.endswith("/embeddings")
        return httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2, 0.3]}]})

    async def call():
        generator = OpenAIChatGenerator(api_key="k", client=_client(handler))
        return await generator.embed("hello")

    assert asyncio.run(call()) == [0.1, 0.2, 0.3]


def test_malformed_payload_is_provider_error():
    def handler(request):
        return httpx.Response(200, json={"choices": []})

    async def call():
        generator = OpenAIChatGenerator(api_key="k", client=_client(handler))
        return await generator("s", "u", 0.5, 10)

    with pytest.raises(ProviderError):
        asyncio.run(call())
