from __future__ import annotations

import asyncio
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

import pyttsx3

from hypebuddy.config import VoiceSettings
from hypebuddy.persona import Persona
from hypebuddy.telemetry.logging import get_logger

QUALITY_DEFAULT = 0
QUALITY_ENHANCED = 1
QUALITY_PREMIUM = 2


@dataclass(frozen=True, slots=True)
class VoiceInfo:
    id: str
    name: str
    language: str
    gender: str | None = None
    quality: int = QUALITY_DEFAULT


@dataclass(frozen=True, slots=True)
class UtteranceSettings:
    voice: VoiceInfo | None
    rate: float
    pitch: float
    volume: float = 1.0


class LocalSynthesizer(ABC):
    @abstractmethod
    def voices(self) -> list[VoiceInfo]:
        """Voices installed on this device."""

    @abstractmethod
    async def speak(self, text: str, settings: UtteranceSettings) -> None:
        """Speak *text*; returns once the utterance finished or was stopped."""

    @abstractmethod
    async def stop(self) -> None:
        """Interrupt the current utterance, if any."""


def _normalize_locale(value: str) -> str:
    return value.replace("_", "-").strip().lower()


def select_voice(
    voices: Sequence[VoiceInfo],
    persona: Persona,
    locale: str = "en-US",
    default_locale: str = "en",
) -> VoiceInfo | None:
    """Pick a voice: persona gender, then quality, then any locale voice, then the default locale."""
    target = _normalize_locale(locale)
    in_locale = [voice for voice in voices if _normalize_locale(voice.language) == target]
    preferred = [voice for voice in in_locale if voice.gender == persona.voice_gender]
    for pool in (preferred, in_locale):
        if pool:
            # max() keeps the first voice among equals, so device order breaks ties.
            return max(pool, key=lambda voice: voice.quality)
    fallback = _normalize_locale(default_locale)
    for voice in voices:
        if _normalize_locale(voice.language).startswith(fallback):
            return voice
    return None


def utterance_settings(persona: Persona, voices: Sequence[VoiceInfo], voice_settings: VoiceSettings) -> UtteranceSettings:
    return UtteranceSettings(
        voice=select_voice(voices, persona, voice_settings.locale, voice_settings.default_locale),
        rate=voice_settings.base_rate_wpm * persona.speech_rate,
        pitch=persona.pitch,
    )


def _parse_language(raw: Any) -> str:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="ignore")
    # espeak prefixes the language with a priority byte.
    return str(raw).lstrip("\x00\x01\x02\x03\x04\x05\x06\x07\x08\t").strip()


def _parse_gender(raw: Any) -> str | None:
    if not raw:
        return None
    lowered = str(raw).lower()
    if "female" in lowered:
        return "female"
    if "male" in lowered:
        return "male"
    return None


def _parse_quality(name: str) -> int:
    lowered = name.lower()
    if "premium" in lowered:
        return QUALITY_PREMIUM
    if "enhanced" in lowered:
        return QUALITY_ENHANCED
    return QUALITY_DEFAULT


class Pyttsx3Synthesizer(LocalSynthesizer):
    """On-device synthesis through pyttsx3; the blocking engine runs in a worker thread."""

    def __init__(self) -> None:
        self._engine: Any = None
        self._engine_lock = threading.Lock()
        self._logger = get_logger(__name__)

    def _ensure_engine(self) -> Any:
        if self._engine is None:
            self._engine = pyttsx3.init()
        return self._engine

    def voices(self) -> list[VoiceInfo]:
        engine = self._ensure_engine()
        result: list[VoiceInfo] = []
        for voice in engine.getProperty("voices") or []:
            languages = list(getattr(voice, "languages", None) or [])
            name = str(getattr(voice, "name", "") or voice.id)
            result.append(
                VoiceInfo(
                    id=str(voice.id),
                    name=name,
                    language=_parse_language(languages[0]) if languages else "",
                    gender=_parse_gender(getattr(voice, "gender", None)),
                    quality=_parse_quality(name),
                )
            )
        return result

    async def speak(self, text: str, settings: UtteranceSettings) -> None:
        await asyncio.to_thread(self._speak_blocking, text, settings)

    def _speak_blocking(self, text: str, settings: UtteranceSettings) -> None:
        with self._engine_lock:
            engine = self._ensure_engine()
            if settings.voice is not None:
                engine.setProperty("voice", settings.voice.id)
            engine.setProperty("rate", int(settings.rate))
            engine.setProperty("volume", settings.volume)
            self._logger.debug(
                "native.tts.speak",
                voice=settings.voice.name if settings.voice else None,
                rate=int(settings.rate),
                pitch=settings.pitch,
                chars=len(text),
            )
            engine.say(text)
            engine.runAndWait()

    async def stop(self) -> None:
        if self._engine is None:
            return
        self._engine.stop()


__all__ = [
    "VoiceInfo",
    "UtteranceSettings",
    "LocalSynthesizer",
    "Pyttsx3Synthesizer",
    "select_voice",
    "utterance_settings",
]
