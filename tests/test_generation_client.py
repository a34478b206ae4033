from __future__ import annotations

import json

import httpx
import pytest

from hypebuddy.config import LLMSettings
from hypebuddy.llm.client import GenerationClient
from hypebuddy.llm.providers.gemini import GeminiProvider
from hypebuddy.llm.types import EmptyResponse, GenerationFailed, ModelUnavailable


def gemini_reply(text: str) -> dict:
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}],
        "usageMetadata": {"totalTokenCount": 42},
    }


def make_client(handler) -> GenerationClient:
    settings = LLMSettings(gemini_api_key="test-key")
    provider = GeminiProvider("test-key", settings, transport=httpx.MockTransport(handler))
    return GenerationClient(provider)


@pytest.mark.anyio
async def test_generate_posts_prompt_with_sampling_config() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_reply("  You are unstoppable!  "))

    client = make_client(handler)
    text = await client.generate("hype me up")
    await client.aclose()

    assert text == "You are unstoppable!"
    assert "/models/gemini-2.5-flash-lite:generateContent" in captured["url"]
    assert "key=test-key" in captured["url"]
    assert captured["body"]["contents"][0]["parts"][0]["text"] == "hype me up"
    assert captured["body"]["generationConfig"] == {
        "temperature": 0.9,
        "topP": 0.95,
        "topK": 40,
        "maxOutputTokens": 200,
    }


@pytest.mark.anyio
async def test_http_error_becomes_generation_failed() -> None:
    client = make_client(lambda request: httpx.Response(503, json={"error": "overloaded"}))
    with pytest.raises(GenerationFailed):
        await client.generate("hype me up")


@pytest.mark.anyio
async def test_blank_reply_is_empty_response() -> None:
    client = make_client(lambda request: httpx.Response(200, json={"candidates": []}))
    with pytest.raises(EmptyResponse) as excinfo:
        await client.generate("hype me up")
    assert str(excinfo.value) == "AI returned an empty response"


@pytest.mark.anyio
async def test_missing_key_means_model_unavailable() -> None:
    client = GenerationClient.from_settings(LLMSettings(gemini_api_key=None))
    assert client.available is False
    with pytest.raises(ModelUnavailable):
        await client.generate("hype me up")


@pytest.mark.anyio
async def test_non_json_body_becomes_generation_failed() -> None:
    client = make_client(lambda request: httpx.Response(200, text="<html>proxy error</html>"))
    with pytest.raises(GenerationFailed) as excinfo:
        await client.generate("hype me up")
    assert "unreadable response" in str(excinfo.value)


@pytest.mark.anyio
@pytest.mark.parametrize("body", [["not", "a", "dict"], {"candidates": ["oops"]}, {"candidates": [{"content": "text"}]}])
async def test_unexpected_shape_becomes_generation_failed(body) -> None:
    client = make_client(lambda request: httpx.Response(200, json=body))
    with pytest.raises(GenerationFailed):
        await client.generate("hype me up")
