from __future__ import annotations

import json

import httpx
import pytest

from hypebuddy.config import EdgeTTSSettings
from hypebuddy.persona import get_persona
from hypebuddy.tts.edge import EdgeTTSClient, RemoteSynthesisError


@pytest.mark.anyio
async def test_synthesize_sends_persona_voice() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, content=b"ID3-fake-mp3")

    settings = EdgeTTSSettings(base_url="http://tts.local:5050/", api_key="secret")
    client = EdgeTTSClient(settings, transport=httpx.MockTransport(handler))
    audio = await client.synthesize("You got this", get_persona("boost"))
    await client.aclose()

    assert audio == b"ID3-fake-mp3"
    assert captured["url"] == "http://tts.local:5050/v1/audio/speech"
    assert captured["auth"] == "Bearer secret"
    assert captured["body"] == {
        "model": "tts-1",
        "input": "You got this",
        "voice": "en-US-JennyNeural",
        "response_format": "mp3",
        "speed": 1.15,
    }


@pytest.mark.anyio
async def test_empty_audio_raises() -> None:
    client = EdgeTTSClient(
        EdgeTTSSettings(base_url="http://tts.local"),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"")),
    )
    with pytest.raises(RemoteSynthesisError):
        await client.synthesize("hi", get_persona("sparky"))


@pytest.mark.anyio
async def test_server_error_is_http_error() -> None:
    client = EdgeTTSClient(
        EdgeTTSSettings(base_url="http://tts.local"),
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    with pytest.raises(httpx.HTTPStatusError):
        await client.synthesize("hi", get_persona("sparky"))
