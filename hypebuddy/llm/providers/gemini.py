from __future__ import annotations

from typing import Any

import httpx

from hypebuddy.config import LLMSettings
from hypebuddy.llm.types import GenerationFailed, GenerationResult, TextProvider
from hypebuddy.telemetry.logging import get_logger


class GeminiProvider(TextProvider):
    def __init__(
        self,
        api_key: str,
        settings: LLMSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or LLMSettings(gemini_api_key=api_key)
        self._client = httpx.AsyncClient(
            base_url="https://generativelanguage.googleapis.com/v1beta",
            timeout=self._settings.timeout_seconds,
            transport=transport,
        )
        self._api_key = api_key
        self._model = self._settings.model
        self._logger = get_logger(__name__)
        self.name = "gemini"

    def _generation_config(self) -> dict[str, Any]:
        return {
            "temperature": self._settings.temperature,
            "topP": self._settings.top_p,
            "topK": self._settings.top_k,
            "maxOutputTokens": self._settings.max_output_tokens,
        }

    async def generate(self, prompt: str) -> GenerationResult:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": self._generation_config(),
        }
        self._logger.debug("gemini.generate", model=self._model, prompt_len=len(prompt))
        resp = await self._client.post(
            f"/models/{self._model}:generateContent",
            params={"key": self._api_key},
            json=payload,
        )
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as exc:
            self._logger.warning("gemini.decode_failed", status=resp.status_code, body=resp.text[:200])
            raise GenerationFailed(f"AI returned an unreadable response: {exc}") from exc
        if not isinstance(data, dict):
            raise GenerationFailed(f"AI returned an unexpected response: {type(data).__name__}")
        try:
            return self._parse(data)
        except (AttributeError, TypeError, IndexError) as exc:
            raise GenerationFailed(f"AI returned an unexpected response: {exc}") from exc

    def _parse(self, data: dict[str, Any]) -> GenerationResult:
        text = ""
        finish_reason = None
        candidates = data.get("candidates") or []
        if candidates:
            first = candidates[0]
            parts = (first.get("content") or {}).get("parts") or []
            text = "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))
            finish_reason = first.get("finishReason")
        usage = data.get("usageMetadata")
        return GenerationResult(
            text=text,
            model=self._model,
            finish_reason=finish_reason,
            usage=usage if isinstance(usage, dict) else {},
        )

    async def aclose(self) -> None:
        await self._client.aclose()
