from __future__ import annotations

import httpx

from hypebuddy.config import EdgeTTSSettings
from hypebuddy.persona import Persona
from hypebuddy.telemetry.logging import get_logger


class RemoteSynthesisError(RuntimeError):
    pass


class EdgeTTSClient:
    """Client for an OpenAI-compatible Edge TTS server (``POST /v1/audio/speech``)."""

    def __init__(self, settings: EdgeTTSSettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._endpoint = settings.base_url.rstrip("/") + "/v1/audio/speech"
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout_seconds, connect=5.0),
            transport=transport,
        )
        self._logger = get_logger(__name__)

    def build_request(self, text: str, persona: Persona) -> dict[str, object]:
        return {
            "model": self._settings.model,
            "input": text,
            "voice": persona.remote_voice,
            "response_format": self._settings.response_format,
            "speed": persona.speech_rate,
        }

    async def synthesize(self, text: str, persona: Persona) -> bytes:
        payload = self.build_request(text, persona)
        headers = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"

        preview = text if len(text) <= 120 else text[:120] + "…"
        self._logger.info("edge.tts.request", persona=persona.id, voice=payload["voice"], input=preview)
        async with self._client.stream("POST", self._endpoint, headers=headers, json=payload) as resp:
            resp.raise_for_status()
            audio_chunks: list[bytes] = []
            async for chunk in resp.aiter_bytes():
                audio_chunks.append(chunk)
        audio = b"".join(audio_chunks)
        if not audio:
            raise RemoteSynthesisError("remote synthesis returned no audio")
        return audio

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["EdgeTTSClient", "RemoteSynthesisError"]
