from __future__ import annotations

import httpx

from hypebuddy.config import LLMSettings
from hypebuddy.llm.providers.gemini import GeminiProvider
from hypebuddy.llm.types import EmptyResponse, GenerationFailed, ModelUnavailable, TextProvider
from hypebuddy.telemetry.logging import get_logger
from hypebuddy.telemetry.tracing import get_tracer


class GenerationClient:
    """Single-call front for the configured text model.

    There is no retry here; a failed call is surfaced to the caller as a
    typed GenerationError.
    """

    def __init__(self, provider: TextProvider | None) -> None:
        self._provider = provider
        self._logger = get_logger(__name__)
        self._tracer = get_tracer(__name__)

    @classmethod
    def from_settings(cls, settings: LLMSettings) -> "GenerationClient":
        if not settings.gemini_api_key:
            get_logger(__name__).warning("llm.gemini.unconfigured")
            return cls(None)
        return cls(GeminiProvider(settings.gemini_api_key, settings))

    @property
    def available(self) -> bool:
        return self._provider is not None

    async def generate(self, prompt: str) -> str:
        if self._provider is None:
            raise ModelUnavailable()
        with self._tracer.start_as_current_span("hype.generate") as span:
            span.set_attribute("llm.provider", self._provider.name)
            span.set_attribute("llm.prompt_len", len(prompt))
            try:
                result = await self._provider.generate(prompt)
            except httpx.HTTPError as exc:
                self._logger.error("llm.generate.failed", provider=self._provider.name, error=str(exc))
                raise GenerationFailed(f"AI request failed: {exc}") from exc
            text = result.text.strip()
            if not text:
                self._logger.warning("llm.generate.empty", provider=self._provider.name, finish_reason=result.finish_reason)
                raise EmptyResponse()
            span.set_attribute("llm.response_len", len(text))
        self._logger.info("llm.generate.complete", provider=self._provider.name, chars=len(text))
        return text

    async def aclose(self) -> None:
        if self._provider is not None:
            await self._provider.aclose()


__all__ = ["GenerationClient"]
