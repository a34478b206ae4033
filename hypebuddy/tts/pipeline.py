from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import AsyncContextManager, Callable, Literal, Optional, Protocol

import httpx
import regex

from hypebuddy.config import VoiceSettings
from hypebuddy.persona import DEFAULT_PERSONA, Persona, get_persona
from hypebuddy.telemetry.logging import get_logger
from hypebuddy.tts.edge import EdgeTTSClient, RemoteSynthesisError
from hypebuddy.tts.native import LocalSynthesizer, VoiceInfo, utterance_settings

Backend = Literal["remote", "local"]

# Scalars rendered as emoji by default, plus the joiners and selectors that glue them together.
_EMOJI_RE = regex.compile(r"[\p{Emoji_Presentation}\p{Emoji_Modifier}\u200d\ufe0e\ufe0f\u20e3]")
_RUN_OF_SPACES_RE = regex.compile(r"[ \t]{2,}")


def strip_emoji(text: str) -> str:
    cleaned = _EMOJI_RE.sub("", text)
    return _RUN_OF_SPACES_RE.sub(" ", cleaned).strip()


@dataclass(frozen=True, slots=True)
class VoiceStatus:
    speaking: bool = False
    using_fallback: bool = False
    backend: Optional[Backend] = None


StatusObserver = Callable[[VoiceStatus], None]


class AudioSink(Protocol):
    def claim(self, tag: str) -> AsyncContextManager[object]: ...

    async def play_bytes(self, audio: bytes, tag: str) -> float: ...

    async def stop(self) -> bool: ...


class VoiceDeliveryPipeline:
    """Speaks persona replies: remote neural voice first, on-device voice on failure.

    Only one utterance is live at a time. ``speak`` stops whatever is playing,
    then returns once the new utterance has finished or was stopped.
    """

    def __init__(
        self,
        local: LocalSynthesizer,
        audio: AudioSink,
        voice_settings: VoiceSettings | None = None,
        remote: EdgeTTSClient | None = None,
        persona: Persona | None = None,
    ) -> None:
        self._local = local
        self._audio = audio
        self._voice_settings = voice_settings or VoiceSettings()
        self._remote = remote
        self._persona = persona or get_persona(DEFAULT_PERSONA)
        self._status = VoiceStatus()
        self._observers: list[StatusObserver] = []
        self._task: asyncio.Task[None] | None = None
        self._generation = 0
        self._voices: list[VoiceInfo] | None = None
        self._logger = get_logger(__name__)

    def configure(self, persona: Persona) -> None:
        self._persona = persona
        self._logger.debug("voice.configured", persona=persona.id)

    def subscribe(self, observer: StatusObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    @property
    def status(self) -> VoiceStatus:
        return self._status

    @property
    def is_speaking(self) -> bool:
        return self._status.speaking

    @property
    def using_fallback(self) -> bool:
        return self._status.using_fallback

    async def speak(self, text: str) -> None:
        self._generation += 1
        generation = self._generation
        await self.stop()
        if generation != self._generation:
            # A newer speak() arrived while the previous utterance was stopping.
            return

        cleaned = strip_emoji(text)
        if not cleaned:
            self._logger.debug("voice.skip_empty")
            return

        task = asyncio.create_task(self._deliver(cleaned, self._persona))
        self._task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            await self.stop()
            raise
        finally:
            if self._task is task:
                self._task = None
        if not task.cancelled():
            task.result()

    async def stop(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        self._task = None
        await self._audio.stop()
        await self._local.stop()
        task.cancel()
        await asyncio.wait({task})
        self._set_status(speaking=False)
        self._logger.info("voice.stopped")

    async def _deliver(self, text: str, persona: Persona) -> None:
        tag = f"voice:{persona.id}"
        async with self._audio.claim(tag):
            try:
                if self._remote is not None and await self._speak_remote(self._remote, text, persona, tag):
                    return
                await self._speak_local(text, persona)
            finally:
                self._set_status(speaking=False)

    async def _speak_remote(self, remote: EdgeTTSClient, text: str, persona: Persona, tag: str) -> bool:
        self._set_status(speaking=True, using_fallback=False, backend="remote")
        try:
            audio = await remote.synthesize(text, persona)
            duration = await self._audio.play_bytes(audio, tag)
        # Undecodable audio and device errors surface as RuntimeError subclasses.
        except (httpx.HTTPError, RemoteSynthesisError, RuntimeError) as exc:
            self._logger.warning("voice.remote.failed", persona=persona.id, error=str(exc))
            self._set_status(using_fallback=True)
            return False
        self._logger.info("voice.remote.played", persona=persona.id, duration=round(duration, 2))
        return True

    async def _speak_local(self, text: str, persona: Persona) -> None:
        if self._voices is None:
            self._voices = await asyncio.to_thread(self._local.voices)
        settings = utterance_settings(persona, self._voices, self._voice_settings)
        self._set_status(speaking=True, backend="local")
        self._logger.info(
            "voice.local.speak",
            persona=persona.id,
            voice=settings.voice.id if settings.voice else None,
            fallback=self._status.using_fallback,
        )
        await self._local.speak(text, settings)

    def _set_status(self, **changes: object) -> None:
        updated = replace(self._status, **changes)
        if updated == self._status:
            return
        self._status = updated
        for observer in list(self._observers):
            observer(updated)


__all__ = ["VoiceDeliveryPipeline", "VoiceStatus", "AudioSink", "strip_emoji"]
